"""
Routes des badges : progression, evaluation, revocation, definitions (badges
personnalises des coachs, gestion admin), administration du cache et de la
queue d'evaluation.
"""
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from peakplay.core.database import get_session
from peakplay.domain.entities import (
    BadgeCreate, BadgeEvaluateRequest, BadgeProgress, BadgeRevokeRequest, BadgeUpdate,
    Student, User, UserRole,
)
from peakplay.domain.errors import ServiceError, forbidden
from peakplay.domain.services.badge_evaluation_scheduler import BadgeEvaluationScheduler
from peakplay.domain.services.badge_service import BadgeService, get_badge_service
from peakplay.domain.services.profile_service import require_coach
from peakplay.domain.services.skill_service import skill_service
from peakplay.api.routers._shared import get_current_user, require_role, raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


def _coach_student(session: Session, user: User, student_id: UUID) -> Student:
    coach = require_coach(session, user)
    student = session.get(Student, student_id)
    if not student or student.coach_id != coach.id:
        raise forbidden("Not authorized to access this student")
    return student


@router.get("/badges/progress", response_model=List[BadgeProgress])
async def get_badge_progress(
    student_id: Optional[UUID] = Query(None, alias="studentId"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Progression sur chaque badge applicable (eleve : la sienne, coach : ?studentId)"""
    try:
        student = skill_service.resolve_target_student(session, user, student_id)
        return badge_service.get_badge_progress(session, student.id)
    except ServiceError as e:
        raise_http_error(e)


@router.get("/badges/student-progress")
async def get_students_progress(
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Resume des badges de tous les eleves du coach"""
    try:
        coach = require_coach(session, user)
        return badge_service.get_coach_students_progress(session, coach)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/badges/evaluate")
async def evaluate_badges(
    data: BadgeEvaluateRequest,
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Evalue un eleve du coach, ou tous ses eleves"""
    try:
        if data.student_id:
            student = _coach_student(session, user, data.student_id)
            result = badge_service.evaluate_student(session, student.id)
            return {"studentId": str(student.id), **result}

        coach = require_coach(session, user)
        student_ids = list(session.exec(select(Student.id).where(Student.coach_id == coach.id)).all())
        return badge_service.evaluate_all_students(session, student_ids)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/badges/awards/{award_id}/revoke")
async def revoke_badge(
    award_id: UUID,
    data: BadgeRevokeRequest,
    user: User = Depends(require_role(UserRole.COACH, UserRole.ADMIN)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    try:
        award = badge_service.revoke_award(session, user, award_id, data.reason)
    except ServiceError as e:
        raise_http_error(e)
    return {
        "message": "Badge revoked",
        "awardId": str(award.id),
        "revokedAt": award.revoked_at.isoformat(),
    }


# ============ DEFINITIONS ============

@router.post("/badges/coach-custom", status_code=201)
async def create_custom_badge(
    data: BadgeCreate,
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Badge personnalise d'un coach (categorie Custom)"""
    try:
        coach = require_coach(session, user)
        badge = badge_service.create_badge(session, data, coach=coach)
        return {"message": "Custom badge created successfully", "badge": badge_service.badge_detail(session, badge)}
    except ServiceError as e:
        raise_http_error(e)


# ============ ADMIN ============

@router.get("/badges/queue-status")
async def get_queue_status(
    user: User = Depends(require_role(UserRole.ADMIN)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    return {
        "queue": BadgeEvaluationScheduler().get_queue_status(session),
        "cache": badge_service.get_cache_stats(),
    }


@router.delete("/badges/cache")
async def clear_badge_cache(
    user: User = Depends(require_role(UserRole.ADMIN)),
    badge_service: BadgeService = Depends(get_badge_service),
):
    badge_service.clear_cache()
    return {"message": "Badge cache cleared"}


@router.post("/badges/admin", status_code=201)
async def create_badge(
    data: BadgeCreate,
    user: User = Depends(require_role(UserRole.ADMIN)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    try:
        badge = badge_service.create_badge(session, data)
        return badge_service.badge_detail(session, badge)
    except ServiceError as e:
        raise_http_error(e)


@router.put("/badges/admin/{badge_id}")
async def update_badge(
    badge_id: UUID,
    data: BadgeUpdate,
    user: User = Depends(require_role(UserRole.ADMIN)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    try:
        badge = badge_service.update_badge(session, badge_id, data)
        return badge_service.badge_detail(session, badge)
    except ServiceError as e:
        raise_http_error(e)


@router.delete("/badges/admin/{badge_id}")
async def deactivate_badge(
    badge_id: UUID,
    user: User = Depends(require_role(UserRole.ADMIN)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    """Desactive le badge; les attributions deja faites restent visibles"""
    try:
        badge = badge_service.deactivate_badge(session, badge_id)
    except ServiceError as e:
        raise_http_error(e)
    return {"message": "Badge deactivated", "badgeId": str(badge.id)}


@router.get("/badges/{badge_id}")
async def get_badge(
    badge_id: UUID,
    user: User = Depends(require_role(UserRole.COACH, UserRole.ADMIN)),
    session: Session = Depends(get_session),
    badge_service: BadgeService = Depends(get_badge_service),
):
    try:
        return badge_service.badge_detail(session, badge_service.get_badge(session, badge_id))
    except ServiceError as e:
        raise_http_error(e)
