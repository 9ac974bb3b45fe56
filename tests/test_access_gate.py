"""
Access gate: authentication then role authorization
"""
import pytest

from auth.dependencies import Identity, authorize
from conftest import ADMIN_EMAIL, bearer
from database.models import Course, Role
from services.errors import Forbidden, Unauthorized


class TestAuthorizePredicate:

    def test_allowed_role_passes(self):
        identity = Identity(id=1, name="A", email="a@example.com", role=Role.ADMIN)
        assert authorize(identity, frozenset({Role.ADMIN, Role.LECTURER})) is None

    def test_other_role_is_forbidden(self):
        identity = Identity(id=2, name="S", email="s@example.com", role=Role.STUDENT)
        with pytest.raises(Forbidden) as exc_info:
            authorize(identity, frozenset({Role.LECTURER, Role.ADMIN}))
        assert exc_info.value.message == "Forbidden: access denied"

    def test_requires_an_identity(self):
        with pytest.raises(Unauthorized):
            authorize(None, frozenset({Role.ADMIN}))


class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authorized, no token"}

    def test_non_bearer_scheme_counts_as_missing(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Token abc"})
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, no token"

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers=bearer("garbage"))
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, token failed"

    def test_login_and_me(self, client, admin_headers):
        response = client.get("/auth/me", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == ADMIN_EMAIL
        assert data["role"] == "admin"
        assert "hashed_password" not in data

    def test_login_with_wrong_password(self, client):
        response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    def test_token_of_deleted_user(self, client, admin_headers, make_lecturer):
        lecturer = make_lecturer()
        response = client.delete(f"/lecturers/{lecturer['profile']['id']}", headers=admin_headers)
        assert response.status_code == 200

        response = client.get("/auth/me", headers=lecturer["headers"])
        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, user not found"


class TestRoleGate:

    def test_unauthenticated_write_has_no_side_effect(self, client, db):
        response = client.post("/courses", json={"title": "Algebra"})
        assert response.status_code == 401
        assert db.query(Course).count() == 0

    def test_wrong_role_is_forbidden_and_changes_nothing(self, client, db, make_course, make_student):
        course = make_course()
        student = make_student(course["id"])

        response = client.post("/courses", json={"title": "Sneaky"}, headers=student["headers"])
        assert response.status_code == 403
        assert response.json()["message"] == "Forbidden: access denied"
        assert db.query(Course).count() == 1

    def test_registration_is_admin_only(self, client, make_lecturer):
        lecturer = make_lecturer()
        body = {"name": "X", "email": "x@school.edu", "password": "secret123", "role": "admin"}
        response = client.post("/auth/register", json=body, headers=lecturer["headers"])
        assert response.status_code == 403

    def test_any_authenticated_user_reads_courses(self, client, make_course, make_student):
        course = make_course(title="Physics", code="PHY")
        student = make_student(course["id"])

        response = client.get("/courses", headers=student["headers"])
        assert response.status_code == 200
        assert [c["display_name"] for c in response.json()] == ["PHY - Physics"]
