"""
Service des skills : lecture / mise a jour des mesures d'un eleve, historique
journalier des scores composites et moyennes par tranche d'age.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from peakplay.domain.entities.base import to_camel
from peakplay.domain.entities import (
    Skills, SkillHistory, SkillsUpdate, Student, User, UserRole,
)
from peakplay.domain.errors import forbidden, invalid, not_found
from peakplay.domain.services.profile_service import find_coach, require_coach, require_student
from peakplay.domain.services.skill_scoring import compute_composite_scores

logger = logging.getLogger(__name__)

# (champ, nombre de decimales; 0 = arrondi entier)
ANALYTICS_FIELDS: List[Tuple[str, int]] = [
    ("pushup_score", 0),
    ("pullup_score", 0),
    ("sprint_time", 2),
    ("run_5k_time", 2),
    ("mood_score", 1),
    ("sleep_score", 1),
    ("total_calories", 0),
    ("protein", 1),
    ("carbohydrates", 1),
    ("fats", 1),
]

DEFAULT_HISTORY_DAYS = 30


def age_group(age: int) -> Tuple[str, Optional[int], Optional[int]]:
    """Tranche d'age : (libelle, borne basse, borne haute) inclusives."""
    if age <= 10:
        return "10 and below", None, 10
    if age <= 13:
        return "11-13", 11, 13
    if age <= 18:
        return "14-18", 14, 18
    return "18+", 18, None


class SkillService:

    # ============ LECTURE ============

    def resolve_target_student(self, session: Session, user: User, student_id: Optional[UUID]) -> Student:
        """Eleve vise par une lecture / ecriture de skills selon le role de l'appelant."""
        if user.role == UserRole.COACH and student_id:
            coach = find_coach(session, user.id)
            student = session.get(Student, student_id)
            if not student or not coach or student.coach_id != coach.id:
                raise forbidden("Not authorized to access this student's skills")
            return student
        if user.role == UserRole.ATHLETE:
            return require_student(session, user)
        raise forbidden("Forbidden")

    def get_skills(self, session: Session, student: Student) -> Optional[Dict[str, Any]]:
        skills = session.exec(select(Skills).where(Skills.student_id == student.id)).first()
        if not skills:
            return None
        return {
            "skills": skills,
            "student": {
                "studentName": student.student_name,
                "age": student.age,
                "academy": student.academy,
                "height": student.height,
                "weight": student.weight,
            },
        }

    # ============ ECRITURE ============

    def save_skills(self, session: Session, student: Student, data: SkillsUpdate) -> Skills:
        """Ecrit uniquement les champs fournis, met a jour l'historique du jour."""
        values = data.provided_skill_values()

        skills = session.exec(select(Skills).where(Skills.student_id == student.id)).first()
        if not skills:
            skills = Skills(student_id=student.id, category=data.category or "PHYSICAL")
        elif data.category:
            skills.category = data.category

        for name, value in values.items():
            setattr(skills, name, value)
        skills.last_updated = datetime.utcnow()

        session.add(skills)
        session.commit()
        session.refresh(skills)
        logger.info(f"Skills mis a jour pour l'eleve {student.id} ({len(values)} champs)")

        self.record_history(session, student.id, skills)
        return skills

    def record_history(self, session: Session, student_id: UUID, skills: Skills,
                       day: Optional[date] = None, **extra: Any) -> SkillHistory:
        """Upsert de la ligne (eleve, jour) avec les scores composites courants."""
        day = day or date.today()
        scores = compute_composite_scores(skills).as_dict()

        row = self._history_row(session, student_id, day)
        if row is None:
            row = SkillHistory(student_id=student_id, date=day, **scores, **extra)
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # Ligne creee entre-temps par une requete concurrente : on la met a jour
                session.rollback()
                row = self._history_row(session, student_id, day)
                if row is None:
                    raise
                self._apply(row, scores, extra)
                session.add(row)
                session.commit()
        else:
            self._apply(row, scores, extra)
            session.add(row)
            session.commit()

        session.refresh(row)
        return row

    @staticmethod
    def _history_row(session: Session, student_id: UUID, day: date) -> Optional[SkillHistory]:
        return session.exec(
            select(SkillHistory).where(SkillHistory.student_id == student_id, SkillHistory.date == day)
        ).first()

    @staticmethod
    def _apply(row: SkillHistory, scores: Dict[str, float], extra: Dict[str, Any]) -> None:
        for name, value in {**scores, **extra}.items():
            setattr(row, name, value)
        row.updated_at = datetime.utcnow()

    # ============ HISTORIQUE ============

    def get_history(
        self,
        session: Session,
        user: User,
        student_id: Optional[UUID],
        days: int = DEFAULT_HISTORY_DAYS,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        coach = require_coach(session, user)
        if not student_id:
            raise invalid("Student ID is required")

        student = session.get(Student, student_id)
        if not student or student.coach_id != coach.id:
            raise not_found("Student not found or unauthorized")

        if start_date and end_date:
            since, until = start_date, end_date
        else:
            until = date.today()
            since = until - timedelta(days=days)

        rows = session.exec(
            select(SkillHistory)
            .where(
                SkillHistory.student_id == student.id,
                SkillHistory.date >= since,
                SkillHistory.date <= until,
            )
            .order_by(SkillHistory.date)
        ).all()

        return {
            "history": rows,
            "student": {"id": str(student.id), "name": student.student_name, "sport": student.sport},
        }

    # ============ ANALYTICS ============

    def get_analytics(self, session: Session, age: Optional[int]) -> Dict[str, Any]:
        """Moyennes des valeurs non nulles par champ pour la tranche d'age."""
        if age is None:
            raise invalid("Age parameter is required")

        label, low, high = age_group(age)
        query = select(Skills).join(Student, Student.id == Skills.student_id)
        if low is not None:
            query = query.where(Student.age >= low)
        if high is not None:
            query = query.where(Student.age <= high)
        rows = session.exec(query).all()

        averages: Dict[str, float] = {}
        for field, digits in ANALYTICS_FIELDS:
            present = [getattr(row, field) for row in rows if getattr(row, field)]
            if not present:
                averages[to_camel(field)] = 0
                continue
            mean = sum(present) / len(present)
            averages[to_camel(field)] = round(mean) if digits == 0 else round(mean, digits)

        return {"ageGroup": label, "averages": averages, "sampleSize": len(rows)}


# Instance globale
skill_service = SkillService()
