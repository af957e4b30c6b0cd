"""
Service des actions : taches assignees par un coach a un eleve (ou a chaque
membre d'une equipe), suivi par l'eleve, medias de demonstration et de preuve.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlmodel import Session, select

from peakplay.domain.entities import (
    Action, ActionCreate, ActionRead, ActionUpdate, Coach, Student, Team, User, UserRole,
)
from peakplay.domain.errors import forbidden, invalid, not_found
from peakplay.domain.services.profile_service import require_coach, require_student
from peakplay.domain.services.upload_service import (
    DEMO_BUCKET, DEMO_MAX_SIZE, PROOF_BUCKET, UploadResult, UploadService,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
MAX_LIMIT = 20


def serialize_action(action: Action, coach: Optional[Coach], team: Optional[Team] = None) -> Dict[str, Any]:
    data = ActionRead.model_validate(action).model_dump(by_alias=True, mode="json")
    data["coach"] = (
        {"name": coach.name, "academy": coach.academy} if coach
        else {"name": "Unknown Coach", "academy": "Unknown"}
    )
    data["team"] = {"id": str(team.id), "name": team.name} if team else None
    return data


class ActionService:

    # ============ LECTURE ============

    def list_actions(
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
            query = select(Action).where(Action.student_id == student.id)
        elif user.role == UserRole.COACH:
            coach = require_coach(session, user)
            query = select(Action).where(Action.coach_id == coach.id)
            if student_id:
                query = query.where(Action.student_id == student_id)
            elif team_id:
                query = query.where(Action.team_id == team_id)
        else:
            raise forbidden("Invalid role")

        actions = session.exec(
            query.order_by(Action.created_at.desc()).offset(offset).limit(limit)
        ).all()

        coaches = {
            coach.id: coach
            for coach in session.exec(
                select(Coach).where(Coach.id.in_({action.coach_id for action in actions}))
            ).all()
        } if actions else {}
        team_ids = {action.team_id for action in actions if action.team_id}
        teams = {
            team.id: team for team in session.exec(select(Team).where(Team.id.in_(team_ids))).all()
        } if team_ids else {}

        return [
            serialize_action(action, coaches.get(action.coach_id), teams.get(action.team_id))
            for action in actions
        ]

    # ============ CREATION ============

    def create_action(self, session: Session, user: User, data: ActionCreate) -> Dict[str, Any]:
        """Cree une action pour un eleve ou pour chaque membre actif d'une equipe."""
        coach = require_coach(session, user)
        if not data.title or not data.description:
            raise invalid("Title and description are required")
        if not data.student_id and not data.team_id:
            raise invalid("Either studentId or teamId is required")

        fields = data.model_dump(exclude={"student_id", "team_id"})

        if data.team_id:
            team = session.exec(
                select(Team).where(Team.id == data.team_id, Team.coach_id == coach.id, Team.is_active == True)  # noqa: E712
            ).first()
            if not team:
                raise not_found("Team not found")

            for member in team.members:
                session.add(Action(student_id=member.student_id, coach_id=coach.id, team_id=team.id, **fields))
            session.commit()
            logger.info(f"Action d'equipe creee pour {len(team.members)} eleves (team={team.id})")
            return {"count": len(team.members), "message": "Team action created"}

        student = session.exec(
            select(Student).where(Student.id == data.student_id, Student.coach_id == coach.id)
        ).first()
        if not student:
            raise not_found("Student not found or not assigned to you")

        action = Action(student_id=student.id, coach_id=coach.id, **fields)
        session.add(action)
        session.commit()
        session.refresh(action)
        logger.info(f"Action {action.id} creee pour l'eleve {student.id}")
        return serialize_action(action, coach)

    # ============ MISE A JOUR ============

    def update_action(self, session: Session, user: User, data: ActionUpdate) -> Action:
        if not data.action_id:
            raise invalid("Action ID is required")
        if user.role != UserRole.ATHLETE:
            raise forbidden("Forbidden")
        student = require_student(session, user)

        action = session.exec(
            select(Action).where(Action.id == data.action_id, Action.student_id == student.id)
        ).first()
        if not action:
            raise not_found("Action not found")

        now = datetime.utcnow()
        if data.is_completed is not None:
            action.is_completed = data.is_completed
            action.completed_at = now if data.is_completed else None
        if data.is_acknowledged is not None:
            action.is_acknowledged = data.is_acknowledged
            action.acknowledged_at = now if data.is_acknowledged else None
        if "notes" in data.model_fields_set:
            action.notes = data.notes
        action.updated_at = now

        session.add(action)
        session.commit()
        session.refresh(action)
        return action

    # ============ MEDIAS ============

    async def upload_proof(
        self,
        session: Session,
        user: User,
        uploader: UploadService,
        action_id: Optional[str],
        file_name: str,
        content_type: Optional[str],
        content: bytes,
    ) -> Dict[str, Any]:
        """Preuve de realisation envoyee par l'eleve proprietaire de l'action."""
        if not action_id or content is None:
            raise invalid("File and action ID are required")
        uploader.validate(content_type, len(content), uploader.proof_max_size())

        student = require_student(session, user)
        action = session.get(Action, _parse_uuid(action_id))
        if not action:
            raise not_found("Action not found")
        if action.student_id != student.id:
            raise forbidden("Action not authorized")

        result = await uploader.upload(content, file_name, content_type, PROOF_BUCKET)

        action.proof_media_url = result.url
        action.proof_media_type = result.media_type
        action.proof_file_name = result.file_name
        action.proof_file_size = result.file_size
        action.proof_upload_method = result.upload_method.value
        action.proof_uploaded_at = datetime.utcnow()
        action.proof_processing_time = result.processing_time
        action.updated_at = datetime.utcnow()
        session.add(action)
        session.commit()
        session.refresh(action)

        logger.info(f"Preuve envoyee pour l'action {action.id} ({result.upload_method.value}, {result.processing_time}ms)")
        return {
            "message": "Proof uploaded successfully",
            "action": {
                "id": str(action.id),
                "proofMediaType": action.proof_media_type,
                "proofFileName": action.proof_file_name,
                "proofUploadedAt": action.proof_uploaded_at.isoformat(),
            },
            "performance": {
                "uploadTime": result.processing_time,
                "originalFileSize": len(content),
                "uploadMethod": result.upload_method.value,
            },
            "storage": {
                "method": result.upload_method.value,
                "isSupabaseAvailable": uploader.storage_available,
            },
        }

    async def upload_demo(
        self,
        session: Session,
        user: User,
        uploader: UploadService,
        action_id: Optional[str],
        file_name: str,
        content_type: Optional[str],
        content: bytes,
    ) -> Dict[str, Any]:
        """Media de demonstration d'un coach; rattache a l'action si actionId est fourni."""
        if content is None:
            raise invalid("File is required")
        uploader.validate(content_type, len(content), DEMO_MAX_SIZE)

        coach = require_coach(session, user)
        action = None
        if action_id and action_id != "temp":
            action = session.exec(
                select(Action).where(Action.id == _parse_uuid(action_id), Action.coach_id == coach.id)
            ).first()
            if not action:
                raise not_found("Action not found or not authorized")

        result = await uploader.upload(content, file_name, content_type, DEMO_BUCKET, fallback_on_failure=True)
        media_data = _demo_media_data(result)

        if action is None:
            return {"message": "Demo media uploaded successfully", "mediaData": media_data}

        action.demo_media_url = result.url
        action.demo_media_type = result.media_type
        action.demo_file_name = result.file_name
        action.demo_file_size = result.file_size
        action.demo_upload_method = result.upload_method.value
        action.updated_at = datetime.utcnow()
        session.add(action)
        session.commit()
        session.refresh(action)

        logger.info(f"Demo envoyee pour l'action {action.id} ({result.upload_method.value})")
        return {
            "message": "Demo media uploaded successfully",
            "action": serialize_action(action, coach),
            "mediaData": media_data,
        }


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise not_found("Action not found")


def _demo_media_data(result: UploadResult) -> Dict[str, Any]:
    return {
        "demoMediaUrl": result.url,
        "demoMediaType": result.media_type,
        "demoFileName": result.file_name,
        "demoFileSize": result.file_size,
        "demoUploadMethod": result.upload_method.value,
        "demoProcessingTime": result.processing_time,
    }


# Instance globale
action_service = ActionService()
