"""Tests covering registration, login, and profile management."""

from __future__ import annotations

import pytest
from flask.testing import FlaskClient

from models import db
from models.user import User


def _login(client: FlaskClient, email: str, password: str) -> str:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    payload = response.get_json()
    return payload["data"]["access_token"]


def test_register_applicant_returns_token(client: FlaskClient):
    response = client.post(
        "/auth/register",
        json={"email": "Sara@Example.com ", "password": "Secret123", "name": "Sara"},
    )

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["access_token"]
    assert data["user"]["email"] == "sara@example.com"
    assert data["user"]["role"] == "applicant"
    assert "office_details" not in data["user"]


def test_register_office_uses_default_visa_limit(client: FlaskClient):
    response = client.post(
        "/auth/register",
        json={
            "email": "office@example.com",
            "password": "Secret123",
            "role": "office",
            "name": "Delta Visas",
            "address": "1 Nile St",
            "governorate": "Giza",
        },
    )

    assert response.status_code == 201
    details = response.get_json()["data"]["user"]["office_details"]
    assert details["governorate"] == "Giza"
    assert details["visa_limit"] == 5
    assert details["active_visa_requests"] == 0


def test_register_rejects_admin_role(client: FlaskClient):
    response = client.post(
        "/auth/register",
        json={"email": "root@example.com", "password": "Secret123", "role": "admin"},
    )

    assert response.status_code == 400
    assert response.get_json()["data"]["error"] == "ValidationError"


def test_register_duplicate_email_conflicts(client: FlaskClient, create_user):
    create_user("taken@example.com")

    response = client.post(
        "/auth/register",
        json={"email": "TAKEN@example.com", "password": "Secret123"},
    )

    assert response.status_code == 409
    assert response.get_json()["data"]["error"] == "Conflict"


def test_login_returns_access_token(client: FlaskClient, create_user, app):
    """Users should receive a JWT when providing valid credentials."""

    user_id = create_user("nour@example.com", password="VisaPass123")

    response = client.post(
        "/auth/login",
        json={"email": "nour@example.com", "password": "VisaPass123"},
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert "access_token" in data
    assert data["user"]["email"] == "nour@example.com"
    assert data["user"]["role"] == "applicant"

    with app.app_context():
        assert db.session.get(User, user_id).last_login_at is not None


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"email": "nour@example.com"}, 400),
        ({"password": "VisaPass123"}, 400),
        ({"email": "nour@example.com", "password": "wrong"}, 401),
        ({"email": "nobody@example.com", "password": "VisaPass123"}, 401),
    ],
)
def test_login_validation(client: FlaskClient, create_user, payload, status_code):
    """Login endpoint should validate request bodies and credentials."""

    create_user("nour@example.com", password="VisaPass123")

    response = client.post("/auth/login", json=payload)

    assert response.status_code == status_code


def test_token_from_login_authenticates(client: FlaskClient, create_user):
    create_user("nour@example.com", password="VisaPass123")
    token = _login(client, "nour@example.com", "VisaPass123")

    response = client.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.get_json()["data"]["user"]["email"] == "nour@example.com"


def test_token_for_deleted_user_is_not_found(client: FlaskClient, auth_headers):
    response = client.get("/auth/profile", headers=auth_headers(9999))

    assert response.status_code == 404
    assert response.get_json()["message"] == "User not found."


def test_office_can_update_profile_details(client: FlaskClient, office):
    response = client.put(
        "/auth/profile",
        json={"phone_number": "+20 100 000 0000", "governorate": "Alexandria", "visa_limit": 8},
        headers=office.headers,
    )

    assert response.status_code == 200
    user = response.get_json()["data"]["user"]
    assert user["phone_number"] == "+20 100 000 0000"
    assert user["office_details"]["governorate"] == "Alexandria"
    assert user["office_details"]["visa_limit"] == 8


def test_applicant_profile_ignores_office_fields(client: FlaskClient, applicant, app):
    response = client.put(
        "/auth/profile",
        json={"name": "Mona", "visa_limit": 10},
        headers=applicant.headers,
    )

    assert response.status_code == 200
    with app.app_context():
        user = db.session.get(User, applicant.id)
        assert user.name == "Mona"
        assert user.visa_limit is None
