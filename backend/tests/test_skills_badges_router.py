"""
Tests des routes skills et badges (evaluation inline apres une mise a jour).
"""
from sqlmodel import select

from peakplay.domain.entities import StudentBadge, UserRole

from factories import auth_headers, make_badge, make_coach, make_skills, make_student, make_user, rule, user_of


class TestSkillsRoutes:
    def test_save_returns_composite_scores_and_awards_badge(self, client, session):
        student = make_student(session)
        badge = make_badge(session, "Pushup Pro", [rule("pushup_score", "GTE", "30")])

        response = client.post(
            "/api/skills", json={"pushupScore": 35, "moodScore": 8},
            headers=auth_headers(user_of(session, student)),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["pushupScore"] == 35
        assert set(body["compositeScores"]) == {
            "physicalScore", "nutritionScore", "mentalScore",
            "wellnessScore", "techniqueScore", "tacticalScore",
        }
        award = session.exec(select(StudentBadge).where(StudentBadge.student_id == student.id)).one()
        assert award.badge_id == badge.id

    def test_partial_update_keeps_other_fields(self, client, session):
        student = make_student(session)
        make_skills(session, student, pushup_score=10, sprint_time=7.5)

        client.post("/api/skills", json={"pushupScore": 12}, headers=auth_headers(user_of(session, student)))

        body = client.get("/api/skills", headers=auth_headers(user_of(session, student))).json()
        assert body["pushupScore"] == 12
        assert body["sprintTime"] == 7.5
        assert body["student"]["studentName"] == student.student_name

    def test_get_without_skills_is_null(self, client, session):
        student = make_student(session)
        response = client.get("/api/skills", headers=auth_headers(user_of(session, student)))
        assert response.status_code == 200
        assert response.json() is None

    def test_coach_cannot_read_foreign_student(self, client, session):
        coach = make_coach(session)
        outsider = make_student(session, coach=make_coach(session, name="Other"))
        response = client.get(
            f"/api/skills?studentId={outsider.id}", headers=auth_headers(user_of(session, coach))
        )
        assert response.status_code == 403

    def test_analytics(self, client, session):
        for pushups in (20, 30):
            make_skills(session, make_student(session, age=12), pushup_score=pushups)
        make_skills(session, make_student(session, age=16), pushup_score=90)

        response = client.get(
            "/api/skills/analytics?age=12", headers=auth_headers(make_user(session, UserRole.COACH))
        )

        body = response.json()
        assert body["ageGroup"] == "11-13"
        assert body["sampleSize"] == 2
        assert body["averages"]["pushupScore"] == 25
        assert body["averages"]["sprintTime"] == 0

    def test_analytics_requires_age(self, client, session):
        response = client.get("/api/skills/analytics", headers=auth_headers(make_user(session)))
        assert response.status_code == 400

    def test_history_for_coach(self, client, session):
        coach = make_coach(session)
        student = make_student(session, coach=coach)
        client.post(
            "/api/skills", json={"studentId": str(student.id), "pushupScore": 20},
            headers=auth_headers(user_of(session, coach)),
        )

        response = client.get(
            f"/api/skills/history?studentId={student.id}", headers=auth_headers(user_of(session, coach))
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["history"]) == 1
        assert body["student"]["name"] == student.student_name

    def test_history_requires_student_id(self, client, session):
        coach = make_coach(session)
        response = client.get("/api/skills/history", headers=auth_headers(user_of(session, coach)))
        assert response.status_code == 400


class TestBadgeRoutes:
    def _earn(self, session):
        coach = make_coach(session)
        student = make_student(session, coach=coach)
        make_badge(session, "Pushup Pro", [rule("pushup_score", "GTE", "30")])
        make_badge(session, "Sprinter", [rule("sprint_time", "LTE", "7")])
        make_skills(session, student, pushup_score=40, sprint_time=8)
        return coach, student

    def test_progress_for_student(self, client, session):
        _, student = self._earn(session)

        response = client.get("/api/badges/progress", headers=auth_headers(user_of(session, student)))

        assert response.status_code == 200
        by_name = {entry["badgeName"]: entry for entry in response.json()}
        assert by_name["Pushup Pro"]["progress"] == 100
        assert by_name["Pushup Pro"]["earned"] is True
        assert by_name["Sprinter"]["earned"] is False
        # La lecture n'attribue rien
        assert session.exec(select(StudentBadge)).all() == []

    def test_evaluate_one_student(self, client, session):
        coach, student = self._earn(session)

        response = client.post(
            "/api/badges/evaluate", json={"studentId": str(student.id)},
            headers=auth_headers(user_of(session, coach)),
        )

        assert response.status_code == 200
        assert response.json()["studentId"] == str(student.id)
        assert len(response.json()["newBadges"]) == 1

    def test_evaluate_all_students_of_coach(self, client, session):
        coach, _ = self._earn(session)
        make_student(session, coach=coach, name="No skills")

        response = client.post("/api/badges/evaluate", json={}, headers=auth_headers(user_of(session, coach)))

        body = response.json()
        assert body["studentsEvaluated"] == 2
        assert body["totalNewBadges"] == 1
        assert body["errors"] == []

    def test_evaluate_foreign_student_is_forbidden(self, client, session):
        coach, _ = self._earn(session)
        outsider = make_student(session)
        response = client.post(
            "/api/badges/evaluate", json={"studentId": str(outsider.id)},
            headers=auth_headers(user_of(session, coach)),
        )
        assert response.status_code == 403

    def test_revoke(self, client, session):
        coach, student = self._earn(session)
        client.post(
            "/api/badges/evaluate", json={"studentId": str(student.id)},
            headers=auth_headers(user_of(session, coach)),
        )
        award = session.exec(select(StudentBadge).where(StudentBadge.student_id == student.id)).one()

        response = client.post(
            f"/api/badges/awards/{award.id}/revoke", json={"reason": "Entered by mistake"},
            headers=auth_headers(user_of(session, coach)),
        )

        assert response.status_code == 200
        assert response.json()["awardId"] == str(award.id)
        progress = client.get("/api/badges/progress", headers=auth_headers(user_of(session, student))).json()
        assert {e["badgeName"]: e["earnedAt"] for e in progress}["Pushup Pro"] is None
        session.refresh(award)
        assert award.is_revoked is True

    def test_student_progress_summary(self, client, session):
        coach, _ = self._earn(session)
        response = client.get("/api/badges/student-progress", headers=auth_headers(user_of(session, coach)))
        assert response.status_code == 200
        assert response.json()["summary"]["totalStudents"] == 1

    def test_admin_routes(self, client, session):
        admin = make_user(session, UserRole.ADMIN)

        status = client.get("/api/badges/queue-status", headers=auth_headers(admin))
        assert status.status_code == 200
        assert set(status.json()) == {"queue", "cache"}

        cleared = client.delete("/api/badges/cache", headers=auth_headers(admin))
        assert cleared.json() == {"message": "Badge cache cleared"}

    def test_admin_routes_reject_coach(self, client, session):
        coach = make_coach(session)
        response = client.get("/api/badges/queue-status", headers=auth_headers(user_of(session, coach)))
        assert response.status_code == 403
