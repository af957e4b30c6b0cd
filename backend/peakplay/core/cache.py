"""
Caches applicatifs bornes avec TTL.

Deux implementations de la meme interface:
  - MemoryTTLCache : map LRU en memoire, taille maximale + TTL par entree
  - RedisTTLCache  : valeurs JSON dans Redis (SETEX), namespace par cache

Les caches sont fournis par des fonctions de dependance (get_badge_cache,
get_media_url_cache) et passes explicitement aux services, ce qui permet aux
tests de les remplacer via app.dependency_overrides.
"""
import json
import logging
import threading
import time
from collections import OrderedDict
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from peakplay.core.redis import get_redis_client
from peakplay.core.settings import get_settings

logger = logging.getLogger(__name__)


class CacheBackend:
    """Interface commune des caches."""

    name: str = "cache"

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def stats(self) -> Dict[str, Any]:
        raise NotImplementedError


class MemoryTTLCache(CacheBackend):
    """Cache LRU en memoire avec TTL.

    Chaque entree stocke (valeur, expiration). Une lecture expiree compte comme
    un miss et supprime l'entree. Au-dela de max_entries, l'entree la moins
    recemment utilisee est evincee.
    """

    def __init__(
        self,
        name: str,
        max_entries: int = 1000,
        default_ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries doit etre >= 1")
        self.name = name
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        self._data: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._data[key]
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._data[key] = (value, self._clock() + ttl)
            self._data.move_to_end(key)
            while len(self._data) > self.max_entries:
                evicted, _ = self._data.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Cache {self.name}: eviction LRU de {evicted}")

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "backend": "memory",
                "size": len(self._data),
                "max_entries": self.max_entries,
                "default_ttl": self.default_ttl,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "keys": list(self._data.keys()),
            }


class RedisTTLCache(CacheBackend):
    """Cache JSON dans Redis. Redis indisponible = miss (avec warning)."""

    def __init__(self, name: str, client: redis.Redis, default_ttl: float = 300):
        self.name = name
        self.default_ttl = default_ttl
        self._redis = client
        self._prefix = f"peakplay:cache:{name}:"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._redis.get(self._prefix + key)
        except redis.RedisError as exc:
            logger.warning(f"Redis indisponible (cache get {key}): {exc}")
            return None
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        try:
            self._redis.setex(self._prefix + key, max(int(ttl), 1), json.dumps(value, default=str))
        except redis.RedisError as exc:
            logger.warning(f"Redis indisponible (cache set {key}): {exc}")

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._prefix + key)
        except redis.RedisError as exc:
            logger.warning(f"Redis indisponible (cache delete {key}): {exc}")

    def clear(self) -> None:
        try:
            keys = list(self._redis.scan_iter(match=self._prefix + "*", count=100))
            if keys:
                self._redis.delete(*keys)
        except redis.RedisError as exc:
            logger.warning(f"Redis indisponible (cache clear {self.name}): {exc}")

    def stats(self) -> Dict[str, Any]:
        try:
            keys = [k[len(self._prefix):] for k in self._redis.scan_iter(match=self._prefix + "*", count=100)]
        except redis.RedisError as exc:
            logger.warning(f"Redis indisponible (cache stats {self.name}): {exc}")
            keys = []
        return {
            "name": self.name,
            "backend": "redis",
            "size": len(keys),
            "default_ttl": self.default_ttl,
            "keys": keys,
        }


def build_cache(name: str) -> CacheBackend:
    """Construit un cache selon CACHE_BACKEND (redis si configure et disponible, sinon memoire)."""
    settings = get_settings()
    if settings.CACHE_BACKEND == "redis":
        client = get_redis_client()
        if client is not None:
            return RedisTTLCache(name, client, default_ttl=settings.CACHE_TTL_SECONDS)
        logger.warning(f"CACHE_BACKEND=redis mais REDIS_URL vide, cache {name} en memoire")
    return MemoryTTLCache(
        name,
        max_entries=settings.CACHE_MAX_ENTRIES,
        default_ttl=settings.CACHE_TTL_SECONDS,
    )


@lru_cache()
def get_badge_cache() -> CacheBackend:
    """Cache du catalogue de badges et de la progression par eleve."""
    return build_cache("badges")


@lru_cache()
def get_media_url_cache() -> CacheBackend:
    """Cache des URLs signees des medias d'actions."""
    return build_cache("media_urls")
