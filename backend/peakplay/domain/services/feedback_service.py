"""
Service des feedbacks coach -> eleve.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlmodel import Session, select, or_

from peakplay.domain.entities import (
    Coach, Feedback, FeedbackCreate, FeedbackRead, FeedbackUpdate, Student, Team, User, UserRole,
)
from peakplay.domain.errors import forbidden, invalid, not_found
from peakplay.domain.services.profile_service import require_coach, require_student

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 15
MAX_LIMIT = 25


class FeedbackService:

    def _serialize(self, session: Session, feedback: Feedback) -> Dict[str, Any]:
        data = FeedbackRead.model_validate(feedback).model_dump(by_alias=True, mode="json")
        coach = session.get(Coach, feedback.coach_id)
        team = session.get(Team, feedback.team_id) if feedback.team_id else None
        student = session.get(Student, feedback.student_id)
        data["coach"] = {"name": coach.name, "academy": coach.academy} if coach else None
        data["team"] = {"id": str(team.id), "name": team.name} if team else None
        data["student"] = (
            {"id": str(student.id), "studentName": student.student_name, "email": student.email}
            if student else None
        )
        return data

    def list_feedback(
        self,
        session: Session,
        user: User,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        student_id: Optional[UUID] = None,
        team_id: Optional[UUID] = None,
    ) -> List[Dict[str, Any]]:
        limit = max(1, min(limit, MAX_LIMIT))
        offset = max(0, offset)

        if user.role == UserRole.ATHLETE:
            student = require_student(session, user)
            query = select(Feedback).where(Feedback.student_id == student.id)
        elif user.role == UserRole.COACH:
            coach = require_coach(session, user)
            if student_id:
                student = session.get(Student, student_id)
                if not student or student.coach_id != coach.id:
                    raise forbidden("Not authorized to view this student's feedback")
                query = select(Feedback).where(Feedback.student_id == student_id)
            elif team_id:
                query = select(Feedback).where(Feedback.team_id == team_id, Feedback.coach_id == coach.id)
            else:
                student_ids = [s.id for s in session.exec(select(Student).where(Student.coach_id == coach.id)).all()]
                query = select(Feedback).where(
                    or_(Feedback.coach_id == coach.id, Feedback.student_id.in_(student_ids))
                )
        else:
            raise forbidden("Access denied")

        rows = session.exec(query.order_by(Feedback.created_at.desc()).offset(offset).limit(limit)).all()
        return [self._serialize(session, row) for row in rows]

    def create_feedback(self, session: Session, user: User, data: FeedbackCreate) -> Dict[str, Any]:
        coach = require_coach(session, user)
        if not data.title or not data.content or not data.category or not data.priority:
            raise invalid("Missing required fields")
        if not data.student_id and not data.team_id:
            raise invalid("Either studentId or teamId is required")

        fields = {
            "title": data.title,
            "content": data.content,
            "category": data.category,
            "priority": data.priority,
            "coach_id": coach.id,
        }

        if data.team_id:
            team = session.exec(
                select(Team).where(Team.id == data.team_id, Team.coach_id == coach.id)
            ).first()
            if not team:
                raise not_found("Team not found")
            created = [Feedback(student_id=m.student_id, team_id=team.id, **fields) for m in team.members]
            for feedback in created:
                session.add(feedback)
            session.commit()
            logger.info(f"Feedback d'equipe cree pour {len(created)} eleves (team={team.id})")
            return {"count": len(created), "message": "Team feedback created"}

        student = session.exec(
            select(Student).where(Student.id == data.student_id, Student.coach_id == coach.id)
        ).first()
        if not student:
            raise not_found("Student not found or not assigned to you")

        feedback = Feedback(student_id=student.id, **fields)
        session.add(feedback)
        session.commit()
        session.refresh(feedback)
        logger.info(f"Feedback {feedback.id} cree pour l'eleve {student.id}")
        return self._serialize(session, feedback)

    def update_feedback(self, session: Session, user: User, data: FeedbackUpdate) -> Dict[str, Any]:
        if not data.feedback_id:
            raise invalid("Feedback ID is required")
        student = require_student(session, user)

        feedback = session.exec(
            select(Feedback).where(Feedback.id == data.feedback_id, Feedback.student_id == student.id)
        ).first()
        if not feedback:
            raise not_found("Feedback not found")

        if data.is_acknowledged is not None:
            feedback.is_acknowledged = data.is_acknowledged
            feedback.acknowledged_at = datetime.utcnow() if data.is_acknowledged else None
        feedback.updated_at = datetime.utcnow()
        session.add(feedback)
        session.commit()
        session.refresh(feedback)
        return self._serialize(session, feedback)


# Instance globale
feedback_service = FeedbackService()
