"""
Tests de la lecture des medias d'actions : controle d'acces, URL signees,
cache, reecriture CDN et repli sur l'URL publique.
"""
import asyncio
import pytest

from peakplay.core.cache import MemoryTTLCache
from peakplay.domain.entities import UserRole
from peakplay.domain.errors import ErrorKind, ServiceError
from peakplay.domain.services.media_service import MediaService, can_access_action, media_cache_key
from peakplay.domain.services.storage_config import StorageTierConfig, get_storage_config

from factories import make_action, make_coach, make_student, make_user, user_of

PUBLIC_URL = "https://proj.supabase.co/storage/v1/object/public/action-proofs/videos/1-ab.mp4"

STANDARD = StorageTierConfig(
    pro_tier=False, cdn_enabled=False, cdn_domain="", signed_url_ttl=1800, chunk_size=None, bucket="media",
)
PRO_CDN = StorageTierConfig(
    pro_tier=True, cdn_enabled=True, cdn_domain="cdn.peakplay.app", signed_url_ttl=3600,
    chunk_size=6 * 1024 * 1024, bucket="media",
)


class FakeSigner:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def create_signed_url(self, bucket, path, expires_in):
        self.calls.append((bucket, path, expires_in))
        if self.fail:
            raise ServiceError(ErrorKind.UPSTREAM, "Storage error: HTTP 500")
        return f"https://proj.supabase.co/storage/v1/object/sign/{bucket}/{path}?token=abc"


@pytest.fixture
def setup(session):
    coach = make_coach(session)
    student = make_student(session, coach=coach)
    action = make_action(
        session, coach, student,
        proof_media_url=PUBLIC_URL,
        proof_media_type="video",
        proof_file_name="proof.mp4",
        proof_file_size=1234,
        proof_upload_method="supabase",
        demo_media_url="data:image/png;base64,AAA",
        demo_media_type="image",
        demo_upload_method="fallback_base64",
    )
    return coach, student, action


class TestAccess:
    def test_roles(self, session, setup):
        coach, student, action = setup
        stranger = make_student(session)
        other_coach = make_coach(session, name="Other")

        assert can_access_action(session, user_of(session, student), action)
        assert can_access_action(session, user_of(session, coach), action)
        assert can_access_action(session, make_user(session, UserRole.ADMIN), action)
        assert not can_access_action(session, user_of(session, stranger), action)
        assert not can_access_action(session, user_of(session, other_coach), action)


class TestGetActionMedia:
    def test_signs_supabase_media_and_keeps_base64(self, session, setup):
        _, student, action = setup
        signer = FakeSigner()
        service = MediaService(MemoryTTLCache("media-test"), signer, STANDARD)

        result = asyncio.run(service.get_action_media(session, user_of(session, student), action.id))

        assert result["proofMedia"]["url"].startswith("https://proj.supabase.co/storage/v1/object/sign/")
        assert result["proofMedia"]["cdnUrl"] is None
        assert result["proofMedia"]["cached"] is False
        assert result["demoMedia"]["url"] == "data:image/png;base64,AAA"
        assert signer.calls == [("action-proofs", "videos/1-ab.mp4", 1800)]

    def test_second_read_is_cached(self, session, setup):
        _, student, action = setup
        signer = FakeSigner()
        cache = MemoryTTLCache("media-test")
        service = MediaService(cache, signer, STANDARD)
        user = user_of(session, student)

        asyncio.run(service.get_action_media(session, user, action.id))
        result = asyncio.run(service.get_action_media(session, user, action.id))

        assert result["proofMedia"]["cached"] is True
        assert len(signer.calls) == 1
        assert cache.get(media_cache_key(action.id, user.id, "proof")) is not None

    def test_cdn_rewrite_on_pro_tier(self, session, setup):
        _, student, action = setup
        service = MediaService(MemoryTTLCache("media-test"), FakeSigner(), PRO_CDN)

        result = asyncio.run(service.get_action_media(session, user_of(session, student), action.id))

        assert result["proofMedia"]["cdnUrl"].startswith("https://cdn.peakplay.app/storage/v1/cdn/object/sign/")

    def test_signing_failure_returns_public_url(self, session, setup):
        _, student, action = setup
        cache = MemoryTTLCache("media-test")
        service = MediaService(cache, FakeSigner(fail=True), STANDARD)

        result = asyncio.run(service.get_action_media(session, user_of(session, student), action.id))

        assert result["proofMedia"]["url"] == PUBLIC_URL
        assert cache.stats()["size"] == 0
        assert result["proofMedia"]["cdnUrl"] is None

    def test_signing_failure_still_rewrites_for_cdn(self, session, setup):
        _, student, action = setup
        service = MediaService(MemoryTTLCache("media-test"), FakeSigner(fail=True), PRO_CDN)

        result = asyncio.run(service.get_action_media(session, user_of(session, student), action.id))

        assert result["proofMedia"]["url"] == PUBLIC_URL
        assert result["proofMedia"]["cdnUrl"] == (
            "https://cdn.peakplay.app/storage/v1/cdn/object/public/action-proofs/videos/1-ab.mp4"
        )

    def test_forbidden_and_not_found(self, session, setup):
        from uuid import uuid4
        _, _, action = setup
        service = MediaService(MemoryTTLCache("media-test"), FakeSigner(), STANDARD)
        stranger = make_student(session)

        with pytest.raises(ServiceError) as exc:
            asyncio.run(service.get_action_media(session, user_of(session, stranger), action.id))
        assert exc.value.kind == ErrorKind.FORBIDDEN

        with pytest.raises(ServiceError) as exc:
            asyncio.run(service.get_action_media(session, user_of(session, stranger), uuid4()))
        assert exc.value.kind == ErrorKind.NOT_FOUND


class TestStorageConfig:
    def test_standard_tier(self):
        assert STANDARD.media_cache_ttl == pytest.approx(1620)
        assert STANDARD.to_cdn_url(PUBLIC_URL) == PUBLIC_URL

    def test_pro_tier_from_settings(self):
        class FakeSettings:
            SUPABASE_PRO_TIER = True
            SUPABASE_CDN_ENABLED = True
            SUPABASE_CDN_DOMAIN = ""
            SUPABASE_BUCKET = "media"

        config = get_storage_config(FakeSettings())
        assert config.signed_url_ttl == 3600
        assert config.chunk_size == 6 * 1024 * 1024
        assert config.to_cdn_url(PUBLIC_URL) == PUBLIC_URL.replace("/storage/v1/", "/storage/v1/cdn/")

    def test_cdn_requires_pro_tier(self):
        class FakeSettings:
            SUPABASE_PRO_TIER = False
            SUPABASE_CDN_ENABLED = True
            SUPABASE_CDN_DOMAIN = ""
            SUPABASE_BUCKET = "media"

        config = get_storage_config(FakeSettings())
        assert config.cdn_enabled is False
        assert config.chunk_size is None
