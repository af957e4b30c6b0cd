"""
Service des profils : creation des profils coach / eleve et resolution du
profil de l'utilisateur connecte.
"""
import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlmodel import Session, select

from peakplay.domain.entities import (
    User, Coach, Student, Skills, CoachCreate, StudentCreate, UserRole,
)
from peakplay.domain.errors import invalid, not_found, forbidden

logger = logging.getLogger(__name__)


def find_coach(session: Session, user_id: UUID) -> Optional[Coach]:
    return session.exec(select(Coach).where(Coach.user_id == user_id)).first()


def find_student(session: Session, user_id: UUID) -> Optional[Student]:
    return session.exec(select(Student).where(Student.user_id == user_id)).first()


def require_coach(session: Session, user: User) -> Coach:
    """Profil coach de l'utilisateur (403 si pas coach, 404 si profil absent)."""
    if user.role != UserRole.COACH:
        raise forbidden("Only coaches can perform this action")
    coach = find_coach(session, user.id)
    if not coach:
        raise not_found("Coach profile not found")
    return coach


def require_student(session: Session, user: User) -> Student:
    """Profil eleve de l'utilisateur (403 si pas athlete, 404 si profil absent)."""
    if user.role != UserRole.ATHLETE:
        raise forbidden("Only athletes can perform this action")
    student = find_student(session, user.id)
    if not student:
        raise not_found("Student profile not found")
    return student


class ProfileService:

    def create_coach(self, session: Session, user: User, data: CoachCreate) -> Coach:
        if not data.name or not data.academy:
            raise invalid("Missing required fields")

        db_user = session.get(User, user.id)
        if not db_user:
            raise not_found("User not found")

        if find_coach(session, db_user.id):
            raise invalid("Coach profile already exists")

        coach = Coach(
            user_id=db_user.id,
            name=data.name,
            email=db_user.email,
            academy=data.academy,
        )
        session.add(coach)
        session.commit()
        session.refresh(coach)
        logger.info(f"Profil coach cree pour {db_user.email}")
        return coach

    def create_student(self, session: Session, user: User, data: StudentCreate) -> Tuple[Student, bool]:
        """Cree le profil eleve. Retourne (student, created); created=False si le profil existait."""
        required = (data.name, data.age, data.height, data.weight, data.academy, data.role)
        if any(not value for value in required):
            raise invalid("Missing required fields")

        db_user = session.get(User, user.id)
        if not db_user:
            raise not_found("User not found")

        existing = find_student(session, db_user.id)
        if existing:
            logger.info(f"Profil eleve deja existant pour {db_user.email}")
            return existing, False

        if not db_user.username:
            db_user.username = db_user.email.split("@")[0]
            session.add(db_user)
            logger.info(f"Username genere depuis l'email: {db_user.username}")

        student = Student(
            user_id=db_user.id,
            student_name=data.name,
            username=db_user.username,
            email=db_user.email,
            age=int(data.age),
            height=float(data.height),
            weight=float(data.weight),
            academy=data.academy,
            role=data.role,
            sport="CRICKET",
        )
        session.add(student)
        session.flush()

        # Ligne de skills vide pour que les mises a jour futures soient de simples upserts
        session.add(Skills(student_id=student.id, category="PHYSICAL"))
        session.commit()
        session.refresh(student)
        logger.info(f"Profil eleve cree pour {db_user.email}")
        return student, True


# Instance globale
profile_service = ProfileService()
