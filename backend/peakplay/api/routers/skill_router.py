"""
Routes des skills : mesures courantes, historique journalier, moyennes par age.
"""
import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.domain.entities.base import to_camel
from peakplay.domain.entities import SkillHistoryRead, SkillsRead, SkillsUpdate, User, UserRole
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.badge_evaluation_worker import badge_evaluation_worker
from peakplay.domain.services.skill_scoring import compute_composite_scores
from peakplay.domain.services.skill_service import skill_service, DEFAULT_HISTORY_DAYS
from peakplay.api.routers._shared import get_current_user, require_role, raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/skills")
async def get_skills(
    student_id: Optional[UUID] = Query(None, alias="studentId"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Mesures courantes (coach : ?studentId, eleve : les siennes); null si aucune"""
    try:
        student = skill_service.resolve_target_student(session, user, student_id)
        result = skill_service.get_skills(session, student)
    except ServiceError as e:
        raise_http_error(e)

    if result is None:
        return None
    body = SkillsRead.model_validate(result["skills"]).model_dump(by_alias=True, mode="json")
    body["student"] = result["student"]
    return body


@router.post("/skills")
async def save_skills(
    data: SkillsUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Met a jour les champs fournis et demande l'evaluation des badges"""
    try:
        student = skill_service.resolve_target_student(session, user, data.student_id)
        skills = skill_service.save_skills(session, student, data)
    except ServiceError as e:
        raise_http_error(e)

    badge_evaluation_worker.request_evaluation(session, student.id)

    body = SkillsRead.model_validate(skills).model_dump(by_alias=True, mode="json")
    body["compositeScores"] = {
        to_camel(key): value
        for key, value in compute_composite_scores(skills).as_dict().items()
    }
    return body


@router.get("/skills/analytics")
async def get_analytics(
    age: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Moyennes des mesures pour la tranche d'age"""
    try:
        return skill_service.get_analytics(session, age)
    except ServiceError as e:
        raise_http_error(e)


@router.get("/skills/history")
async def get_history(
    student_id: Optional[UUID] = Query(None, alias="studentId"),
    days: int = Query(DEFAULT_HISTORY_DAYS, ge=1, le=365),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session)
):
    """Historique des scores composites d'un eleve du coach"""
    try:
        result = skill_service.get_history(session, user, student_id, days, start_date, end_date)
    except ServiceError as e:
        raise_http_error(e)

    return {
        "history": [
            SkillHistoryRead.model_validate(row).model_dump(by_alias=True, mode="json")
            for row in result["history"]
        ],
        "student": result["student"],
    }
