"""
Service d'upload des medias d'actions.

Un seul chemin pour les preuves (eleves) et les demonstrations (coachs) :
validation du type MIME et de la taille, envoi vers Supabase Storage avec
retry (3 tentatives, backoff 2s puis 4s, chaque tentative bornee par un
timeout), puis repli en data URL base64 quand le stockage est indisponible.
"""
import asyncio
import base64
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from peakplay.core.settings import get_settings
from peakplay.domain.entities import UploadMethod
from peakplay.domain.errors import ErrorKind, ServiceError
from peakplay.domain.services.storage_client import SupabaseStorageClient, get_storage_client
from peakplay.domain.services.storage_config import StorageTierConfig, get_storage_config

logger = logging.getLogger(__name__)

MB = 1024 * 1024

ALLOWED_MEDIA_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
    "video/avi": "avi",
}
INVALID_TYPE_MESSAGE = "Only images (JPEG, PNG, GIF) and videos (MP4, MOV, WebM, AVI) are allowed"

PROOF_MAX_SIZE_STORAGE = 50 * MB
PROOF_MAX_SIZE_FALLBACK = 20 * MB
DEMO_MAX_SIZE = 100 * MB

PROOF_BUCKET = "action-proofs"
DEMO_BUCKET = "media"

MAX_ATTEMPTS = 3
RETRY_DELAYS = (2, 4, 8)


@dataclass
class UploadResult:
    url: str
    file_name: str
    file_size: int
    media_type: str
    upload_method: UploadMethod
    processing_time: int
    object_path: Optional[str] = None


def media_kind(content_type: str) -> str:
    return "image" if content_type.startswith("image/") else "video"


def build_object_path(content_type: str) -> str:
    """images/<ts>-<rand>.<ext> ou videos/<ts>-<rand>.<ext>"""
    extension = ALLOWED_MEDIA_TYPES[content_type]
    name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"
    return f"{media_kind(content_type)}s/{name}"


def to_data_url(content: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


class UploadService:

    def __init__(
        self,
        client: Optional[SupabaseStorageClient],
        config: StorageTierConfig,
        timeout: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.config = config
        self.timeout = timeout
        self._sleep = sleep

    @property
    def storage_available(self) -> bool:
        return self.client is not None

    def proof_max_size(self) -> int:
        return PROOF_MAX_SIZE_STORAGE if self.storage_available else PROOF_MAX_SIZE_FALLBACK

    @staticmethod
    def validate(content_type: Optional[str], size: int, max_size: int) -> None:
        if content_type not in ALLOWED_MEDIA_TYPES:
            raise ServiceError(ErrorKind.VALIDATION, INVALID_TYPE_MESSAGE)
        UploadService.check_size(size, max_size)

    @staticmethod
    def check_size(size: int, max_size: int) -> None:
        if size > max_size:
            raise ServiceError(
                ErrorKind.PAYLOAD_TOO_LARGE,
                f"File size must be less than {max_size // MB}MB",
            )

    async def _upload_with_retry(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                await asyncio.wait_for(
                    self.client.upload(
                        bucket, path, content, content_type,
                        upsert=True,
                        cache_control=self.config.cache_control,
                        chunk_size=self.config.chunk_size,
                    ),
                    timeout=self.timeout,
                )
                return self.client.get_public_url(bucket, path)
            except (ServiceError, asyncio.TimeoutError) as e:
                last_error = e
                logger.warning(f"Upload {bucket}/{path} echoue (tentative {attempt}/{MAX_ATTEMPTS}): {e!r}")
                if attempt < MAX_ATTEMPTS:
                    await self._sleep(RETRY_DELAYS[attempt - 1])

        raise ServiceError(ErrorKind.UPSTREAM, f"Upload failed after {MAX_ATTEMPTS} attempts: {last_error}")

    async def upload(
        self,
        content: bytes,
        file_name: str,
        content_type: str,
        bucket: str,
        fallback_on_failure: bool = False,
    ) -> UploadResult:
        """Envoie le fichier; repli base64 si pas de stockage ou (images) si l'envoi echoue."""
        started = time.monotonic()
        kind = media_kind(content_type)

        def _result(url: str, method: UploadMethod, path: Optional[str] = None) -> UploadResult:
            return UploadResult(
                url=url,
                file_name=file_name,
                file_size=len(content),
                media_type=kind,
                upload_method=method,
                processing_time=int((time.monotonic() - started) * 1000),
                object_path=path,
            )

        if not self.storage_available:
            logger.info(f"Stockage non configure, repli base64 pour {file_name}")
            return _result(to_data_url(content, content_type), UploadMethod.FALLBACK_BASE64)

        path = build_object_path(content_type)
        try:
            url = await self._upload_with_retry(bucket, path, content, content_type)
        except ServiceError:
            if fallback_on_failure and kind == "image":
                logger.warning(f"Stockage indisponible, repli base64 pour l'image {file_name}")
                return _result(to_data_url(content, content_type), UploadMethod.FALLBACK_BASE64)
            raise

        logger.info(f"Media {file_name} envoye dans {bucket}/{path} ({len(content)} octets)")
        return _result(url, UploadMethod.SUPABASE, path)


def get_upload_service() -> UploadService:
    """Dependance FastAPI"""
    settings = get_settings()
    return UploadService(
        get_storage_client(),
        get_storage_config(settings),
        timeout=settings.STORAGE_UPLOAD_TIMEOUT_SECONDS,
    )
