"""
Tests des routes d'actions : liste, creation (eleve / equipe), suivi par
l'eleve, lecture des medias et uploads.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from sqlmodel import select

from peakplay.api.routers.action_router import _read_upload
from peakplay.core.cache import MemoryTTLCache
from peakplay.domain.entities import Action
from peakplay.domain.errors import ErrorKind, ServiceError
from peakplay.domain.services.media_service import MediaService, get_media_service
from peakplay.domain.services.storage_config import StorageTierConfig
from peakplay.domain.services.upload_service import UploadService, get_upload_service

from factories import auth_headers, make_action, make_coach, make_student, make_team, user_of

STANDARD = StorageTierConfig(
    pro_tier=False, cdn_enabled=False, cdn_domain="", signed_url_ttl=1800, chunk_size=None, bucket="media",
)


async def _no_sleep(delay):
    return None


@pytest.fixture
def base64_uploads(app):
    """Uploads sans stockage configure (repli base64)."""
    app.dependency_overrides[get_upload_service] = lambda: UploadService(None, STANDARD, sleep=_no_sleep)
    app.dependency_overrides[get_media_service] = lambda: MediaService(MemoryTTLCache("media"), None, STANDARD)


@pytest.fixture
def squad(session):
    coach = make_coach(session)
    students = [make_student(session, coach=coach, name=f"Player {i}") for i in range(3)]
    return coach, students


class TestCreateAction:
    def test_for_one_student(self, client, session, squad):
        coach, students = squad
        response = client.post(
            "/api/actions",
            json={"title": "Sprint work", "description": "5x50m", "studentId": str(students[0].id), "category": "speed"},
            headers=auth_headers(user_of(session, coach)),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Sprint work"
        assert body["category"] == "SPEED"
        assert body["coach"]["name"] == coach.name
        assert body["isCompleted"] is False

    def test_for_team_creates_one_per_member(self, client, session, squad):
        coach, students = squad
        team = make_team(session, coach, students[:2])

        response = client.post(
            "/api/actions",
            json={"title": "Fielding", "description": "Catches", "teamId": str(team.id)},
            headers=auth_headers(user_of(session, coach)),
        )

        assert response.status_code == 201
        assert response.json() == {"count": 2, "message": "Team action created"}
        actions = session.exec(select(Action).where(Action.team_id == team.id)).all()
        assert {a.student_id for a in actions} == {students[0].id, students[1].id}

    def test_student_of_other_coach(self, client, session, squad):
        coach, _ = squad
        outsider = make_student(session, coach=make_coach(session, name="Other"))
        response = client.post(
            "/api/actions",
            json={"title": "t", "description": "d", "studentId": str(outsider.id)},
            headers=auth_headers(user_of(session, coach)),
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Student not found or not assigned to you"

    def test_missing_target(self, client, session, squad):
        coach, _ = squad
        response = client.post(
            "/api/actions", json={"title": "t", "description": "d"},
            headers=auth_headers(user_of(session, coach)),
        )
        assert response.status_code == 400

    def test_athlete_cannot_create(self, client, session, squad):
        _, students = squad
        response = client.post(
            "/api/actions", json={"title": "t", "description": "d"},
            headers=auth_headers(user_of(session, students[0])),
        )
        assert response.status_code == 403


class TestListActions:
    def test_athlete_sees_own_actions_newest_first(self, client, session, squad):
        coach, students = squad
        make_action(session, coach, students[0], title="First")
        make_action(session, coach, students[0], title="Second")
        make_action(session, coach, students[1], title="Other")

        response = client.get("/api/actions", headers=auth_headers(user_of(session, students[0])))

        assert response.status_code == 200
        assert {a["title"] for a in response.json()} == {"First", "Second"}

    def test_limit_is_capped(self, client, session, squad):
        coach, students = squad
        for i in range(25):
            make_action(session, coach, students[0], title=f"A{i}")

        response = client.get("/api/actions?limit=100", headers=auth_headers(user_of(session, coach)))
        assert len(response.json()) == 20

    def test_coach_filters_by_student(self, client, session, squad):
        coach, students = squad
        make_action(session, coach, students[0])
        make_action(session, coach, students[1])

        response = client.get(
            f"/api/actions?studentId={students[1].id}", headers=auth_headers(user_of(session, coach))
        )
        assert [a["studentId"] for a in response.json()] == [str(students[1].id)]


class TestUpdateAction:
    def test_complete_and_acknowledge(self, client, session, squad):
        coach, students = squad
        action = make_action(session, coach, students[0])

        response = client.patch(
            "/api/actions",
            json={"actionId": str(action.id), "isCompleted": True, "notes": "Done twice"},
            headers=auth_headers(user_of(session, students[0])),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["isCompleted"] is True
        assert body["completedAt"] is not None
        assert body["notes"] == "Done twice"

    def test_other_student_gets_404(self, client, session, squad):
        coach, students = squad
        action = make_action(session, coach, students[0])
        response = client.patch(
            "/api/actions",
            json={"actionId": str(action.id), "isCompleted": True},
            headers=auth_headers(user_of(session, students[1])),
        )
        assert response.status_code == 404

    def test_coach_is_forbidden(self, client, session, squad):
        coach, students = squad
        action = make_action(session, coach, students[0])
        response = client.patch(
            "/api/actions", json={"actionId": str(action.id), "isCompleted": True},
            headers=auth_headers(user_of(session, coach)),
        )
        assert response.status_code == 403


class TestUploads:
    def test_proof_upload_base64_fallback(self, client, session, squad, base64_uploads):
        coach, students = squad
        action = make_action(session, coach, students[0])

        response = client.post(
            "/api/actions/upload-optimized",
            files={"file": ("proof.png", b"\x89PNG", "image/png")},
            data={"actionId": str(action.id)},
            headers=auth_headers(user_of(session, students[0])),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["storage"] == {"method": "fallback_base64", "isSupabaseAvailable": False}
        assert body["action"]["proofMediaType"] == "image"
        session.refresh(action)
        assert action.proof_media_url.startswith("data:image/png;base64,")

    def test_proof_upload_rejects_pdf(self, client, session, squad, base64_uploads):
        coach, students = squad
        action = make_action(session, coach, students[0])
        response = client.post(
            "/api/actions/upload-optimized",
            files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
            data={"actionId": str(action.id)},
            headers=auth_headers(user_of(session, students[0])),
        )
        assert response.status_code == 400

    def test_proof_upload_requires_action_id(self, client, session, squad, base64_uploads):
        _, students = squad
        response = client.post(
            "/api/actions/upload-optimized",
            files={"file": ("proof.png", b"\x89PNG", "image/png")},
            headers=auth_headers(user_of(session, students[0])),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "File and action ID are required"

    def test_proof_upload_for_someone_else(self, client, session, squad, base64_uploads):
        coach, students = squad
        action = make_action(session, coach, students[0])
        response = client.post(
            "/api/actions/upload-optimized",
            files={"file": ("proof.png", b"\x89PNG", "image/png")},
            data={"actionId": str(action.id)},
            headers=auth_headers(user_of(session, students[1])),
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Action not authorized"

    def test_demo_upload_temp(self, client, session, squad, base64_uploads):
        coach, _ = squad
        response = client.post(
            "/api/actions/demo-upload-optimized",
            files={"file": ("demo.mp4", b"\x00\x00", "video/mp4")},
            data={"actionId": "temp"},
            headers=auth_headers(user_of(session, coach)),
        )
        assert response.status_code == 200
        media = response.json()["mediaData"]
        assert media["demoMediaType"] == "video"
        assert media["demoUploadMethod"] == "fallback_base64"

    def test_demo_upload_attaches_to_action(self, client, session, squad, base64_uploads):
        coach, students = squad
        action = make_action(session, coach, students[0])
        response = client.post(
            "/api/actions/demo-upload-optimized",
            files={"file": ("demo.gif", b"GIF89a", "image/gif")},
            data={"actionId": str(action.id)},
            headers=auth_headers(user_of(session, coach)),
        )
        assert response.status_code == 200
        assert response.json()["action"]["demoFileName"] == "demo.gif"

    def test_demo_upload_over_limit_is_rejected(self, client, session, squad, base64_uploads):
        coach, _ = squad
        with patch("peakplay.api.routers.action_router.DEMO_MAX_SIZE", 4):
            response = client.post(
                "/api/actions/demo-upload-optimized",
                files={"file": ("demo.mp4", b"\x00" * 16, "video/mp4")},
                data={"actionId": "temp"},
                headers=auth_headers(user_of(session, coach)),
            )
        assert response.status_code == 413


class TestReadUpload:
    def test_declared_size_checked_before_reading(self):
        upload = MagicMock(size=30, read=AsyncMock(return_value=b"x" * 30))

        with pytest.raises(ServiceError) as exc:
            asyncio.run(_read_upload(upload, 10))

        assert exc.value.kind == ErrorKind.PAYLOAD_TOO_LARGE
        upload.read.assert_not_called()

    def test_reads_when_size_is_allowed_or_unknown(self):
        for size in (5, None):
            upload = MagicMock(size=size, read=AsyncMock(return_value=b"abcde"))
            assert asyncio.run(_read_upload(upload, 10)) == b"abcde"

    def test_missing_file(self):
        assert asyncio.run(_read_upload(None, 10)) is None


class TestActionMedia:
    def test_media_for_owner(self, client, session, squad, base64_uploads):
        coach, students = squad
        action = make_action(session, coach, students[0], proof_media_url="data:image/png;base64,AAA",
                             proof_media_type="image", proof_upload_method="fallback_base64")

        response = client.get(
            f"/api/actions/{action.id}/media", headers=auth_headers(user_of(session, students[0]))
        )
        assert response.status_code == 200
        assert response.json()["proofMedia"]["url"] == "data:image/png;base64,AAA"
        assert response.json()["demoMedia"] is None

    def test_media_unknown_action(self, client, session, squad, base64_uploads):
        _, students = squad
        response = client.get(f"/api/actions/{uuid4()}/media", headers=auth_headers(user_of(session, students[0])))
        assert response.status_code == 404
