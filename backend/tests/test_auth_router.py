"""
Tests des routes d'authentification et de profils.
"""
from sqlmodel import select

from peakplay.domain.entities import Coach, Skills, Student, UserRole

from factories import TEST_PASSWORD, auth_headers, make_user

REGISTER_BODY = {
    "email": "Jane.Doe@Example.com",
    "password": "Secret123",
    "name": "Jane Doe",
    "username": "Jane_Doe",
    "role": "ATHLETE",
}


class TestRegister:
    def test_athlete_gets_student_profile(self, client, session):
        response = client.post("/api/auth/register", json=REGISTER_BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["role"] == "ATHLETE"
        student = session.exec(select(Student)).one()
        assert student.email == "jane.doe@example.com"
        assert student.username == "jane_doe"
        assert student.sport == "CRICKET"

    def test_coach_gets_coach_profile(self, client, session):
        response = client.post("/api/auth/register", json={**REGISTER_BODY, "role": "COACH"})
        assert response.status_code == 201
        assert session.exec(select(Coach)).one().academy == "Not specified"

    def test_duplicate_email_is_conflict(self, client):
        client.post("/api/auth/register", json=REGISTER_BODY)
        response = client.post("/api/auth/register", json={**REGISTER_BODY, "username": "other"})
        assert response.status_code == 409
        assert response.json()["detail"] == "Email already exists"

    def test_duplicate_username_is_conflict(self, client):
        client.post("/api/auth/register", json=REGISTER_BODY)
        response = client.post("/api/auth/register", json={**REGISTER_BODY, "email": "x@example.com"})
        assert response.status_code == 409

    def test_weak_password_is_rejected(self, client):
        response = client.post("/api/auth/register", json={**REGISTER_BODY, "password": "short"})
        assert response.status_code == 400

    def test_admin_role_is_rejected(self, client):
        response = client.post("/api/auth/register", json={**REGISTER_BODY, "role": "ADMIN"})
        assert response.status_code == 400


class TestLogin:
    def test_login_sets_cookies(self, client, session):
        user = make_user(session, email="login@example.com")

        response = client.post("/api/auth/login", data={"email": "login@example.com", "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"
        assert "access_token" in response.cookies

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {response.json()['access_token']}"})
        assert me.json()["id"] == str(user.id)

    def test_wrong_password(self, client, session):
        make_user(session, email="login@example.com")
        response = client.post("/api/auth/login", data={"email": "login@example.com", "password": "Wrong1234"})
        assert response.status_code == 401

    def test_refresh(self, client, session):
        make_user(session, email="login@example.com")
        tokens = client.post(
            "/api/auth/login", data={"email": "login@example.com", "password": TEST_PASSWORD}
        ).json()

        client.cookies.clear()
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["access_token"]

    def test_refresh_rejects_access_token(self, client, session):
        make_user(session, email="login@example.com")
        tokens = client.post(
            "/api/auth/login", data={"email": "login@example.com", "password": TEST_PASSWORD}
        ).json()

        client.cookies.clear()
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401


class TestProfiles:
    def test_create_student_profile(self, client, session):
        user = make_user(session, UserRole.ATHLETE)
        body = {"name": "Sam", "age": 12, "height": 150, "weight": 40, "academy": "North", "role": "Batsman"}

        response = client.post("/api/student/create", json=body, headers=auth_headers(user))

        assert response.status_code == 201
        assert response.json()["studentName"] == "Sam"
        student = session.exec(select(Student)).one()
        assert session.exec(select(Skills).where(Skills.student_id == student.id)).one()

        again = client.post("/api/student/create", json=body, headers=auth_headers(user))
        assert again.status_code == 200
        assert again.json()["id"] == response.json()["id"]

    def test_create_student_missing_fields(self, client, session):
        user = make_user(session, UserRole.ATHLETE)
        response = client.post("/api/student/create", json={"name": "Sam"}, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields"

    def test_create_coach_profile(self, client, session):
        user = make_user(session, UserRole.COACH)
        response = client.post(
            "/api/coach/create", json={"name": "Coach K", "academy": "Elite"}, headers=auth_headers(user)
        )
        assert response.status_code == 201
        assert response.json()["academy"] == "Elite"

        again = client.post(
            "/api/coach/create", json={"name": "Coach K", "academy": "Elite"}, headers=auth_headers(user)
        )
        assert again.status_code == 400
