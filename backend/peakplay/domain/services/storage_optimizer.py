"""
Statistiques de stockage des medias d'actions et nettoyage des medias des
actions acquittees ou anciennes.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select, or_, and_

from peakplay.domain.entities import Action, UploadMethod
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.storage_client import SupabaseStorageClient, extract_object_path
from peakplay.domain.services.storage_config import StorageTierConfig, get_tier_features

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_DAYS = 30

PROOF_FIELDS = (
    "proof_media_url", "proof_media_type", "proof_file_name", "proof_file_size",
    "proof_upload_method", "proof_uploaded_at", "proof_processing_time",
)
DEMO_FIELDS = (
    "demo_media_url", "demo_media_type", "demo_file_name", "demo_file_size", "demo_upload_method",
)
SLOT_FIELDS = {"proof": PROOF_FIELDS, "demo": DEMO_FIELDS}


def _cleanup_filter(cutoff: datetime):
    return and_(
        or_(Action.proof_media_url.is_not(None), Action.demo_media_url.is_not(None)),
        or_(Action.is_acknowledged == True, Action.created_at < cutoff),  # noqa: E712
    )


class StorageOptimizer:

    def __init__(self, client: Optional[SupabaseStorageClient], config: StorageTierConfig):
        self.client = client
        self.config = config

    def get_storage_stats(self, session: Session, days_old: int = DEFAULT_CLEANUP_DAYS) -> Dict[str, Any]:
        cutoff = datetime.utcnow() - timedelta(days=days_old)

        def count(*where) -> int:
            return session.exec(select(func.count()).select_from(Action).where(*where)).one()

        proof_size, demo_size = session.exec(
            select(func.coalesce(func.sum(Action.proof_file_size), 0), func.coalesce(func.sum(Action.demo_file_size), 0))
        ).one()

        return {
            "totalActions": session.exec(select(func.count()).select_from(Action)).one(),
            "actionsWithProofMedia": count(or_(Action.proof_media_url.is_not(None), Action.proof_file_name.is_not(None))),
            "actionsWithDemoMedia": count(or_(Action.demo_media_url.is_not(None), Action.demo_file_name.is_not(None))),
            "totalProofSize": int(proof_size),
            "totalDemoSize": int(demo_size),
            "cleanupCandidates": count(_cleanup_filter(cutoff)),
            "storageConfig": self.config.as_dict(),
            "features": get_tier_features(self.config),
        }

    async def cleanup_acknowledged_media(self, session: Session, days_old: int = DEFAULT_CLEANUP_DAYS) -> Dict[str, Any]:
        """Supprime les objets stockes et efface les champs media des actions candidates.

        Un media stocke dans Supabase n'est efface en base qu'apres la suppression
        de son objet; un echec laisse l'action intacte et est rapporte dans `errors`.
        """
        cutoff = datetime.utcnow() - timedelta(days=days_old)
        actions = session.exec(select(Action).where(_cleanup_filter(cutoff))).all()
        logger.info(f"{len(actions)} actions candidates au nettoyage des medias")

        result = {"filesDeleted": 0, "spaceFreed": 0, "databaseRecordsUpdated": 0, "errors": []}
        cleared: List[Tuple[Action, str]] = []
        to_remove: Dict[str, List[Tuple[Action, str, str]]] = defaultdict(list)

        for action in actions:
            for slot in SLOT_FIELDS:
                url = getattr(action, f"{slot}_media_url")
                if not url:
                    continue
                location = extract_object_path(url)
                if getattr(action, f"{slot}_upload_method") == UploadMethod.SUPABASE.value and location:
                    bucket, path = location
                    to_remove[bucket].append((action, slot, path))
                else:
                    cleared.append((action, slot))

        for bucket, entries in to_remove.items():
            if self.client is None:
                result["errors"].append(f"Storage not configured, {len(entries)} objects kept in {bucket}")
                continue
            try:
                await self.client.remove(bucket, [path for _, _, path in entries])
            except ServiceError as e:
                result["errors"].append(f"Failed to delete {len(entries)} objects from {bucket}: {e.message}")
                continue
            cleared.extend((action, slot) for action, slot, _ in entries)

        updated = set()
        for action, slot in cleared:
            result["filesDeleted"] += 1
            result["spaceFreed"] += getattr(action, f"{slot}_file_size") or 0
            for field in SLOT_FIELDS[slot]:
                setattr(action, field, None)
            action.updated_at = datetime.utcnow()
            session.add(action)
            updated.add(action.id)
        result["databaseRecordsUpdated"] = len(updated)

        session.commit()
        logger.info(
            f"Nettoyage termine: {result['filesDeleted']} fichiers, {result['spaceFreed']} octets, "
            f"{len(result['errors'])} erreurs"
        )
        return result
