"""
Tests du service de badges : attribution, progression en cache, revocation,
evaluation groupee et resume coach.
"""
import pytest
from unittest.mock import patch

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from peakplay.core.cache import MemoryTTLCache
from peakplay.domain.entities import StudentBadge, UserRole
from peakplay.domain.errors import ErrorKind, ServiceError
from peakplay.domain.services.badge_service import BadgeService, progress_key

from factories import make_badge, make_coach, make_skills, make_student, make_user, rule, user_of


@pytest.fixture
def service():
    return BadgeService(MemoryTTLCache("badges-test"))


@pytest.fixture
def badges(session):
    return {
        "pushups": make_badge(session, "Pushup Pro", [rule("pushupScore", "GTE", "30")]),
        "sprinter": make_badge(session, "Sprinter", [rule("sprint_time", "LTE", "7")], category="Speed"),
        "football": make_badge(session, "Footballer", [rule("pushup_score", "GTE", "1")], sport="FOOTBALL"),
    }


class TestEvaluateStudent:
    def test_awards_earned_badges(self, session, service, badges):
        student = make_student(session)
        make_skills(session, student, pushup_score=35, sprint_time=8)

        result = service.evaluate_student(session, student.id)

        assert result["newBadges"] == [str(badges["pushups"].id)]
        by_name = {entry["badgeName"]: entry for entry in result["updatedProgress"]}
        assert by_name["Pushup Pro"]["earned"] is True
        assert by_name["Pushup Pro"]["progress"] == 100
        assert by_name["Sprinter"]["earned"] is False
        assert "Footballer" not in by_name

    def test_no_duplicate_award(self, session, service, badges):
        student = make_student(session)
        make_skills(session, student, pushup_score=35)

        service.evaluate_student(session, student.id)
        second = service.evaluate_student(session, student.id)

        assert second["newBadges"] == []
        awards = session.exec(select(StudentBadge).where(StudentBadge.student_id == student.id)).all()
        assert len(awards) == 1

    def test_unknown_student(self, session, service):
        from uuid import uuid4
        with pytest.raises(ServiceError) as exc:
            service.evaluate_student(session, uuid4())
        assert exc.value.kind == ErrorKind.NOT_FOUND

    def test_concurrent_award_is_skipped(self, session, service, badges):
        student = make_student(session)
        make_skills(session, student, pushup_score=35)

        with patch.object(session, "commit", side_effect=IntegrityError("insert", {}, Exception("dup"))):
            result = service.evaluate_student(session, student.id)

        assert result["newBadges"] == []

    def test_invalidates_progress_cache(self, session, service, badges):
        student = make_student(session)
        skills = make_skills(session, student, pushup_score=10)

        before = service.get_badge_progress(session, student.id)
        assert not any(entry["earned"] for entry in before)
        assert service.cache.get(progress_key(student.id)) is not None

        skills.pushup_score = 40
        session.add(skills)
        session.commit()
        service.evaluate_student(session, student.id)

        assert service.cache.get(progress_key(student.id)) is None
        after = service.get_badge_progress(session, student.id)
        earned = [entry for entry in after if entry["earned"]]
        assert [entry["badgeName"] for entry in earned] == ["Pushup Pro"]
        assert earned[0]["earnedAt"] is not None


class TestGetBadgeProgress:
    def test_read_does_not_award(self, session, service, badges):
        student = make_student(session)
        make_skills(session, student, pushup_score=35)

        progress = service.get_badge_progress(session, student.id)

        entry = next(e for e in progress if e["badgeName"] == "Pushup Pro")
        assert entry["earned"] is True
        assert entry["earnedAt"] is None
        assert session.exec(select(StudentBadge)).all() == []

    def test_served_from_cache(self, session, service, badges):
        student = make_student(session)
        make_skills(session, student, pushup_score=5)
        first = service.get_badge_progress(session, student.id)

        make_badge(session, "Late badge", [rule()])
        assert service.get_badge_progress(session, student.id) == first

    def test_student_without_skills(self, session, service, badges):
        student = make_student(session)
        progress = service.get_badge_progress(session, student.id)
        assert len(progress) == 2
        assert all(entry["progress"] == 0 for entry in progress)


class TestEvaluateAllStudents:
    def test_counts_and_errors(self, session, service, badges):
        from uuid import uuid4
        ok = make_student(session)
        make_skills(session, ok, pushup_score=50)

        result = service.evaluate_all_students(session, [ok.id, uuid4()])

        assert result["studentsEvaluated"] == 1
        assert result["totalNewBadges"] == 1
        assert len(result["errors"]) == 1

    def test_defaults_to_students_with_skills(self, session, service, badges):
        with_skills = make_student(session)
        make_skills(session, with_skills, pushup_score=50)
        make_student(session)

        result = service.evaluate_all_students(session)
        assert result["studentsEvaluated"] == 1


class TestRevokeAward:
    def _award(self, session, service, student):
        make_skills(session, student, pushup_score=50)
        service.evaluate_student(session, student.id)
        return session.exec(select(StudentBadge).where(StudentBadge.student_id == student.id)).one()

    def test_coach_of_student_can_revoke(self, session, service, badges):
        coach = make_coach(session)
        student = make_student(session, coach=coach)
        award = self._award(session, service, student)

        revoked = service.revoke_award(session, user_of(session, coach), award.id, "Data entry error")

        assert revoked.is_revoked is True
        assert revoked.revoke_reason == "Data entry error"
        assert revoked.revoked_at is not None

    def test_other_coach_is_forbidden(self, session, service, badges):
        student = make_student(session, coach=make_coach(session))
        award = self._award(session, service, student)
        intruder = make_coach(session, name="Intruder")

        with pytest.raises(ServiceError) as exc:
            service.revoke_award(session, user_of(session, intruder), award.id, "nope")
        assert exc.value.kind == ErrorKind.FORBIDDEN

    def test_admin_can_revoke_and_badge_can_be_earned_again(self, session, service, badges):
        student = make_student(session)
        award = self._award(session, service, student)
        admin = make_user(session, UserRole.ADMIN)

        service.revoke_award(session, admin, award.id, "Audit")
        with pytest.raises(ServiceError) as exc:
            service.revoke_award(session, admin, award.id, "Twice")
        assert exc.value.kind == ErrorKind.NOT_FOUND

        result = service.evaluate_student(session, student.id)
        assert result["newBadges"] == [str(badges["pushups"].id)]


class TestCoachStudentsProgress:
    def test_summary(self, session, service, badges):
        coach = make_coach(session)
        strong = make_student(session, coach=coach, name="Strong")
        weak = make_student(session, coach=coach, name="Weak")
        make_skills(session, strong, pushup_score=50, sprint_time=6.5)
        make_skills(session, weak, pushup_score=5)
        service.evaluate_all_students(session, [strong.id, weak.id])

        result = service.get_coach_students_progress(session, coach)

        assert result["coach"]["totalStudents"] == 2
        assert [s["student"]["name"] for s in result["students"]] == ["Strong", "Weak"]
        strong_badges = result["students"][0]["badges"]
        assert strong_badges["earned"] == 2
        assert strong_badges["total"] == 2
        assert strong_badges["progressPercentage"] == 100
        assert strong_badges["categoryBreakdown"] == {"Fitness": 1, "Speed": 1}
        assert result["summary"]["averageProgress"] == 50
        assert result["summary"]["totalBadgesEarned"] == 2
        assert result["summary"]["topPerformer"]["name"] == "Strong"

    def test_no_students(self, session, service):
        result = service.get_coach_students_progress(session, make_coach(session))
        assert result["summary"]["averageProgress"] == 0
        assert result["summary"]["topPerformer"] is None
