"""
Client Redis optionnel pour PeakPlay.
Utilise par le backend de cache 'redis' et le health check.
"""
import logging
from functools import lru_cache
from typing import Optional

import redis

from peakplay.core.settings import get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_redis_client() -> Optional[redis.Redis]:
    """Retourne un client Redis partage, ou None si REDIS_URL n'est pas configure."""
    settings = get_settings()
    if not settings.REDIS_URL:
        return None
    return redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=2,
    )


def check_redis_health() -> Optional[bool]:
    """PING Redis. None si Redis n'est pas configure, sinon True/False."""
    client = get_redis_client()
    if client is None:
        return None
    try:
        return bool(client.ping())
    except redis.RedisError as exc:
        logger.warning(f"Redis health check echoue: {exc}")
        return False
