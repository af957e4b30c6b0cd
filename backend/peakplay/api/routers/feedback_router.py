"""
Routes des feedbacks coach -> eleve.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.domain.entities import FeedbackCreate, FeedbackUpdate, User, UserRole
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.feedback_service import feedback_service, DEFAULT_LIMIT
from peakplay.api.routers._shared import get_current_user, require_role, raise_http_error

router = APIRouter()


@router.get("/feedback")
async def list_feedback(
    limit: int = Query(DEFAULT_LIMIT),
    offset: int = Query(0),
    student_id: Optional[UUID] = Query(None, alias="studentId"),
    team_id: Optional[UUID] = Query(None, alias="teamId"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    try:
        return feedback_service.list_feedback(session, user, limit, offset, student_id, team_id)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/feedback", status_code=status.HTTP_201_CREATED)
async def create_feedback(
    data: FeedbackCreate,
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session)
):
    try:
        return feedback_service.create_feedback(session, user, data)
    except ServiceError as e:
        raise_http_error(e)


@router.patch("/feedback")
async def update_feedback(
    data: FeedbackUpdate,
    user: User = Depends(require_role(UserRole.ATHLETE)),
    session: Session = Depends(get_session)
):
    """Acquittement par l'eleve"""
    try:
        return feedback_service.update_feedback(session, user, data)
    except ServiceError as e:
        raise_http_error(e)
