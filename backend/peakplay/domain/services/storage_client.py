"""
Client de l'API REST Supabase Storage (httpx).

Operations utilisees : upload d'objet, URL signee, URL publique, suppression.
Les erreurs HTTP / reseau sont converties en ServiceError(UPSTREAM).
"""
import logging
import re
from typing import AsyncIterator, List, Optional, Tuple
from urllib.parse import quote

import httpx

from peakplay.core.settings import get_settings
from peakplay.domain.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0

# /storage/v1/object/public/<bucket>/<path>, /storage/v1/object/sign/<bucket>/<path>, variante /cdn/
_OBJECT_URL = re.compile(r"/storage/v1/(?:cdn/)?object/(?:public|sign|authenticated)/([^/]+)/([^?]+)")


def extract_object_path(url: Optional[str]) -> Optional[Tuple[str, str]]:
    """(bucket, chemin) d'une URL Storage; None pour une URL externe ou data:."""
    if not url:
        return None
    match = _OBJECT_URL.search(url)
    if not match:
        return None
    return match.group(1), match.group(2)


async def _iter_chunks(content: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    for start in range(0, len(content), chunk_size):
        yield content[start:start + chunk_size]


class SupabaseStorageClient:
    """Acces au stockage objet d'un projet Supabase avec la cle service_role."""

    def __init__(self, base_url: str, service_key: str, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self._client = client

    @property
    def storage_url(self) -> str:
        return f"{self.base_url}/storage/v1"

    def _headers(self, **extra: str) -> dict:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            **extra,
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            logger.warning(f"Supabase Storage HTTP {e.response.status_code} sur {method} {url}: {e.response.text[:200]}")
            raise ServiceError(ErrorKind.UPSTREAM, f"Storage error: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.warning(f"Supabase Storage erreur reseau sur {method} {url}: {e}")
            raise ServiceError(ErrorKind.UPSTREAM, f"Storage unreachable: {e}") from e
        finally:
            if owns_client:
                await client.aclose()

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
        cache_control: str = "3600",
        chunk_size: Optional[int] = None,
    ) -> str:
        """Envoie un objet et retourne son chemin dans le bucket."""
        url = f"{self.storage_url}/object/{bucket}/{quote(path)}"
        headers = self._headers(**{
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
            "cache-control": f"max-age={cache_control}",
        })
        body = _iter_chunks(content, chunk_size) if chunk_size else content
        await self._request("POST", url, content=body, headers=headers)
        logger.info(f"Objet {bucket}/{path} envoye ({len(content)} octets)")
        return path

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        url = f"{self.storage_url}/object/sign/{bucket}/{quote(path)}"
        resp = await self._request("POST", url, json={"expiresIn": expires_in}, headers=self._headers())
        signed = resp.json().get("signedURL") or resp.json().get("signedUrl")
        if not signed:
            raise ServiceError(ErrorKind.UPSTREAM, "Storage returned no signed URL")
        # signedURL est relatif a /storage/v1
        return signed if signed.startswith("http") else f"{self.storage_url}{signed}"

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.storage_url}/object/public/{bucket}/{quote(path)}"

    async def remove(self, bucket: str, paths: List[str]) -> None:
        if not paths:
            return
        url = f"{self.storage_url}/object/{bucket}"
        await self._request("DELETE", url, json={"prefixes": paths}, headers=self._headers())
        logger.info(f"{len(paths)} objet(s) supprime(s) de {bucket}")


def get_storage_client() -> Optional[SupabaseStorageClient]:
    """Client configure depuis les Settings; None si le stockage n'est pas configure."""
    settings = get_settings()
    if not settings.storage_enabled:
        return None
    return SupabaseStorageClient(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
