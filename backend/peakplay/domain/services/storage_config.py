"""
Configuration du niveau de stockage ("Pro tier").

Le niveau Pro allonge la duree des URLs signees, active la reecriture CDN et
les uploads par chunks. Tout est derive des Settings; rien n'est modifie a
l'execution.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from peakplay.core.settings import Settings, get_settings

PRO_SIGNED_URL_TTL = 3600
STANDARD_SIGNED_URL_TTL = 1800

PRO_CHUNK_SIZE = 6 * 1024 * 1024
CACHE_CONTROL_SECONDS = 31536000

# Part de la duree de signature pendant laquelle une URL reste en cache
MEDIA_CACHE_RATIO = 0.9


@dataclass(frozen=True)
class StorageTierConfig:
    pro_tier: bool
    cdn_enabled: bool
    cdn_domain: str
    signed_url_ttl: int
    chunk_size: Optional[int]
    bucket: str

    @property
    def media_cache_ttl(self) -> float:
        return self.signed_url_ttl * MEDIA_CACHE_RATIO

    @property
    def cache_control(self) -> str:
        return str(CACHE_CONTROL_SECONDS) if self.pro_tier else "3600"

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["media_cache_ttl"] = self.media_cache_ttl
        return data

    def to_cdn_url(self, url: str) -> str:
        """Reecrit une URL Storage vers le CDN (ou le domaine CDN personnalise)."""
        if not (self.pro_tier and self.cdn_enabled) or "/storage/v1/" not in url:
            return url
        cdn_url = url.replace("/storage/v1/", "/storage/v1/cdn/", 1)
        if self.cdn_domain:
            domain = urlsplit(self.cdn_domain if "://" in self.cdn_domain else f"https://{self.cdn_domain}")
            parts = urlsplit(cdn_url)
            cdn_url = urlunsplit((domain.scheme, domain.netloc, parts.path, parts.query, parts.fragment))
        return cdn_url


def get_storage_config(settings: Optional[Settings] = None) -> StorageTierConfig:
    settings = settings or get_settings()
    pro = settings.SUPABASE_PRO_TIER
    return StorageTierConfig(
        pro_tier=pro,
        cdn_enabled=pro and settings.SUPABASE_CDN_ENABLED,
        cdn_domain=settings.SUPABASE_CDN_DOMAIN,
        signed_url_ttl=PRO_SIGNED_URL_TTL if pro else STANDARD_SIGNED_URL_TTL,
        chunk_size=PRO_CHUNK_SIZE if pro else None,
        bucket=settings.SUPABASE_BUCKET,
    )


def get_tier_features(config: StorageTierConfig) -> Dict[str, Any]:
    """Capacites annoncees par le niveau de stockage courant."""
    return {
        "dedicatedCompute": config.pro_tier,
        "concurrentConnections": 200 if config.pro_tier else 60,
        "ioPerformance": "High" if config.pro_tier else "Standard",
        "backupRetentionDays": 30 if config.pro_tier else 7,
        "cdnEnabled": config.cdn_enabled,
        "chunkedUploads": config.chunk_size is not None,
    }
