"""
Pytest configuration and shared fixtures
Each test gets a fresh app on an in-memory SQLite database with a seeded admin.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

ADMIN_EMAIL = "admin@school.edu"
ADMIN_PASSWORD = "admin-pass"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret_key="test-secret",
        jwt_expires_in=timedelta(hours=1),
        bcrypt_rounds=4,
        log_level="WARNING",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_name="Admin",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """TestClient as a context manager so the lifespan (tables + admin seed) runs"""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def login(client, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
def admin_headers(client):
    return bearer(login(client, ADMIN_EMAIL, ADMIN_PASSWORD))


# ─── Factories ────────────────────────────────────────────────────────────────

@pytest.fixture
def make_course(client, admin_headers):
    counter = {"n": 0}

    def _make(title=None, code=None):
        counter["n"] += 1
        body = {"title": title or f"Course {counter['n']}", "code": code}
        response = client.post("/courses", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_classroom(client, admin_headers):
    def _make(course_id, class_name="Room A", lecturer_ids=None):
        body = {"class_name": class_name, "course_id": course_id, "lecturer_ids": lecturer_ids or []}
        response = client.post("/classrooms", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def register(client, admin_headers):
    """Register an account through the admin-only endpoint; returns the response JSON."""
    def _register(role, email, password="secret123", name=None, **extra):
        body = {"name": name or email.split("@")[0], "email": email, "password": password, "role": role}
        body.update(extra)
        response = client.post("/auth/register", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        data = response.json()
        data["headers"] = bearer(data["access_token"])
        return data

    return _register


@pytest.fixture
def make_lecturer(register):
    def _make(email="lecturer@school.edu", department="Math"):
        return register("lecturer", email, department=department)

    return _make


@pytest.fixture
def make_student(register):
    def _make(course_id, email="student@school.edu", **extra):
        return register("student", email, course_id=course_id, **extra)

    return _make
