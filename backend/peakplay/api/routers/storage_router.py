"""
Routes d'administration du stockage : statistiques et nettoyage des medias.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.domain.entities import User, UserRole
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.storage_client import get_storage_client
from peakplay.domain.services.storage_config import get_storage_config
from peakplay.domain.services.storage_optimizer import StorageOptimizer, DEFAULT_CLEANUP_DAYS
from peakplay.api.routers._shared import require_role, raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


def get_storage_optimizer() -> StorageOptimizer:
    return StorageOptimizer(get_storage_client(), get_storage_config())


@router.get("/storage/optimize")
async def get_storage_stats(
    days_old: int = Query(DEFAULT_CLEANUP_DAYS, alias="daysOld", ge=1),
    user: User = Depends(require_role(UserRole.ADMIN)),
    session: Session = Depends(get_session),
    optimizer: StorageOptimizer = Depends(get_storage_optimizer),
):
    return optimizer.get_storage_stats(session, days_old)


@router.post("/storage/optimize")
async def cleanup_storage(
    days_old: int = Query(DEFAULT_CLEANUP_DAYS, alias="daysOld", ge=1),
    user: User = Depends(require_role(UserRole.ADMIN)),
    session: Session = Depends(get_session),
    optimizer: StorageOptimizer = Depends(get_storage_optimizer),
):
    """Nettoyage des medias des actions acquittees ou plus anciennes que daysOld"""
    try:
        result = await optimizer.cleanup_acknowledged_media(session, days_old)
    except ServiceError as e:
        raise_http_error(e)
    logger.info(f"Nettoyage du stockage lance par {user.email}")
    return {"message": "Storage cleanup completed", "result": result}
