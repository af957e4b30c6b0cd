"""
Routes des profils : creation du profil coach et du profil eleve.
"""
import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.domain.entities import CoachCreate, CoachRead, StudentCreate, StudentRead, User
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.profile_service import profile_service
from peakplay.api.routers._shared import get_current_user, raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/coach/create", status_code=status.HTTP_201_CREATED, response_model=CoachRead)
async def create_coach(
    data: CoachCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    try:
        return profile_service.create_coach(session, user, data)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/student/create")
async def create_student(
    data: StudentCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Cree le profil eleve; 200 avec le profil existant s'il est deja cree"""
    try:
        student, created = profile_service.create_student(session, user, data)
    except ServiceError as e:
        raise_http_error(e)

    body = StudentRead.model_validate(student).model_dump(by_alias=True, mode="json")
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content=body,
    )
