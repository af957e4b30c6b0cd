"""
Routes des actions : liste, creation, suivi, medias (lecture signee et uploads).
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.domain.entities import ActionCreate, ActionRead, ActionUpdate, User, UserRole
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.action_service import action_service, DEFAULT_LIMIT
from peakplay.domain.services.media_service import MediaService, get_media_service
from peakplay.domain.services.upload_service import DEMO_MAX_SIZE, UploadService, get_upload_service
from peakplay.api.routers._shared import get_current_user, require_role, raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: Optional[UploadFile], max_size: int) -> Optional[bytes]:
    """Refuse un fichier trop gros sur sa taille declaree, avant de lire le contenu."""
    if file is None:
        return None
    if file.size is not None:
        UploadService.check_size(file.size, max_size)
    return await file.read()


@router.get("/actions")
async def list_actions(
    limit: int = Query(DEFAULT_LIMIT),
    offset: int = Query(0),
    student_id: Optional[UUID] = Query(None, alias="studentId"),
    team_id: Optional[UUID] = Query(None, alias="teamId"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    try:
        return action_service.list_actions(session, user, limit, offset, student_id, team_id)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/actions", status_code=status.HTTP_201_CREATED)
async def create_action(
    data: ActionCreate,
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session)
):
    """Cree une action pour un eleve ou pour toute une equipe"""
    try:
        return action_service.create_action(session, user, data)
    except ServiceError as e:
        raise_http_error(e)


@router.patch("/actions", response_model=ActionRead)
async def update_action(
    data: ActionUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Completion / acquittement / notes par l'eleve"""
    try:
        return action_service.update_action(session, user, data)
    except ServiceError as e:
        raise_http_error(e)


@router.get("/actions/{action_id}/media")
async def get_action_media(
    action_id: UUID,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    media_service: MediaService = Depends(get_media_service),
):
    try:
        return await media_service.get_action_media(session, user, action_id)
    except ServiceError as e:
        raise_http_error(e)


@router.post("/actions/upload-optimized")
async def upload_proof(
    file: Optional[UploadFile] = File(None),
    action_id: Optional[str] = Form(None, alias="actionId"),
    user: User = Depends(require_role(UserRole.ATHLETE)),
    session: Session = Depends(get_session),
    uploader: UploadService = Depends(get_upload_service),
):
    """Upload de la preuve de realisation d'une action (eleve)"""
    try:
        content = await _read_upload(file, uploader.proof_max_size())
        return await action_service.upload_proof(
            session, user, uploader,
            action_id=action_id,
            file_name=file.filename if file else "",
            content_type=file.content_type if file else None,
            content=content,
        )
    except ServiceError as e:
        raise_http_error(e)


@router.post("/actions/demo-upload-optimized")
async def upload_demo(
    file: Optional[UploadFile] = File(None),
    action_id: Optional[str] = Form(None, alias="actionId"),
    user: User = Depends(require_role(UserRole.COACH)),
    session: Session = Depends(get_session),
    uploader: UploadService = Depends(get_upload_service),
):
    """Upload d'un media de demonstration (coach)"""
    try:
        content = await _read_upload(file, DEMO_MAX_SIZE)
        return await action_service.upload_demo(
            session, user, uploader,
            action_id=action_id,
            file_name=file.filename if file else "",
            content_type=file.content_type if file else None,
            content=content,
        )
    except ServiceError as e:
        raise_http_error(e)
