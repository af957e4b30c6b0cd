"""
Recuperation des medias d'une action (demonstration et preuve).

Controle d'acces par role, puis pour chaque media stocke dans Supabase :
URL signee (TTL selon le niveau de stockage), reecriture CDN eventuelle et
mise en cache pendant 90% du TTL. Une signature en echec renvoie l'URL
publique stockee.
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlmodel import Session

from peakplay.core.cache import CacheBackend, get_media_url_cache
from peakplay.domain.entities import Action, Student, User, UserRole, UploadMethod
from peakplay.domain.errors import ServiceError, forbidden, not_found
from peakplay.domain.services.profile_service import find_coach, find_student
from peakplay.domain.services.storage_client import (
    SupabaseStorageClient, extract_object_path, get_storage_client,
)
from peakplay.domain.services.storage_config import StorageTierConfig, get_storage_config

logger = logging.getLogger(__name__)

SLOTS = ("demo", "proof")


def media_cache_key(action_id: UUID, user_id: UUID, slot: str) -> str:
    return f"{action_id}-{user_id}-{slot}"


def can_access_action(session: Session, user: User, action: Action) -> bool:
    """Eleve proprietaire, coach createur ou coach de l'eleve, admin."""
    if user.role == UserRole.ADMIN:
        return True
    if user.role == UserRole.ATHLETE:
        student = find_student(session, user.id)
        return bool(student and student.id == action.student_id)
    if user.role == UserRole.COACH:
        coach = find_coach(session, user.id)
        if not coach:
            return False
        if action.coach_id == coach.id:
            return True
        student = session.get(Student, action.student_id)
        return bool(student and student.coach_id == coach.id)
    return False


class MediaService:

    def __init__(self, cache: CacheBackend, client: Optional[SupabaseStorageClient], config: StorageTierConfig):
        self.cache = cache
        self.client = client
        self.config = config

    async def _resolve_slot(self, action: Action, user: User, slot: str) -> Optional[Dict[str, Any]]:
        url = getattr(action, f"{slot}_media_url")
        if not url:
            return None

        media = {
            "url": url,
            "type": getattr(action, f"{slot}_media_type"),
            "fileName": getattr(action, f"{slot}_file_name"),
            "fileSize": getattr(action, f"{slot}_file_size"),
            "uploadMethod": getattr(action, f"{slot}_upload_method"),
            "cdnUrl": None,
            "cached": False,
        }

        location = extract_object_path(url)
        if media["uploadMethod"] != UploadMethod.SUPABASE.value or location is None or self.client is None:
            return media

        key = media_cache_key(action.id, user.id, slot)
        cached = self.cache.get(key)
        if cached is not None:
            media.update(url=cached["url"], cdnUrl=cached["cdnUrl"], cached=True)
            return media

        bucket, path = location
        try:
            signed = await self.client.create_signed_url(bucket, path, self.config.signed_url_ttl)
        except ServiceError as e:
            logger.warning(f"Signature echouee pour l'action {action.id} ({slot}), URL publique renvoyee: {e.message}")
            cdn_url = self.config.to_cdn_url(url)
            media["cdnUrl"] = cdn_url if cdn_url != url else None
            return media

        cdn_url = self.config.to_cdn_url(signed)
        media.update(url=signed, cdnUrl=cdn_url if cdn_url != signed else None)
        self.cache.set(key, {"url": signed, "cdnUrl": media["cdnUrl"]}, ttl=self.config.media_cache_ttl)
        return media

    async def get_action_media(self, session: Session, user: User, action_id: UUID) -> Dict[str, Any]:
        action = session.get(Action, action_id)
        if not action:
            raise not_found("Action not found")
        if not can_access_action(session, user, action):
            raise forbidden("Access denied")

        return {
            "id": str(action.id),
            "title": action.title,
            "demoMedia": await self._resolve_slot(action, user, "demo"),
            "proofMedia": await self._resolve_slot(action, user, "proof"),
        }


def get_media_service() -> MediaService:
    """Dependance FastAPI"""
    return MediaService(get_media_url_cache(), get_storage_client(), get_storage_config())
