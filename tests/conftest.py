"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from flask import Flask
from flask.testing import FlaskClient
from flask_jwt_extended import create_access_token

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.enums import UserRole  # noqa: E402
from models.user import User  # noqa: E402

DEFAULT_PASSWORD = "Passw0rd!"
REQUIRED_DOCUMENTS = ("passport", "photo", "university_certificate")


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    RATE_LIMIT = "1000 per minute"
    VISA_FEE = 2500.0
    DEFAULT_VISA_LIMIT = 5


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def create_user(app: Flask):
    """Persist a user and return its id."""

    def _create(email: str, role: str = "applicant", password: str = DEFAULT_PASSWORD, **fields) -> int:
        with app.app_context():
            user_role = UserRole(role)
            if user_role == UserRole.OFFICE:
                fields.setdefault("visa_limit", 5)
                fields.setdefault("governorate", "Cairo")
            user = User(email=email, role=user_role, name=fields.pop("name", email.split("@")[0]), **fields)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _create


@pytest.fixture()
def auth_headers(app: Flask):
    """Return bearer headers for a user id."""

    def _headers(user_id: int) -> dict[str, str]:
        with app.app_context():
            token = create_access_token(identity=str(user_id))
        return {"Authorization": f"Bearer {token}"}

    return _headers


def _actor(create_user, auth_headers, email: str, role: str, **fields) -> SimpleNamespace:
    user_id = create_user(email, role, **fields)
    return SimpleNamespace(id=user_id, email=email, headers=auth_headers(user_id))


@pytest.fixture()
def applicant(create_user, auth_headers) -> SimpleNamespace:
    return _actor(create_user, auth_headers, "applicant@example.com", "applicant")


@pytest.fixture()
def admin(create_user, auth_headers) -> SimpleNamespace:
    return _actor(create_user, auth_headers, "admin@example.com", "admin")


@pytest.fixture()
def office(create_user, auth_headers) -> SimpleNamespace:
    return _actor(create_user, auth_headers, "office@example.com", "office", name="Nile Visas")


@pytest.fixture()
def visa_flow(client: FlaskClient):
    """Drive a request through the early lifecycle over HTTP."""

    def create(actor) -> int:
        response = client.post(
            "/visa", json={"passport_number": "A1234567"}, headers=actor.headers
        )
        assert response.status_code == 201, response.get_json()
        return response.get_json()["data"]["visa_request"]["id"]

    def upload_documents(actor, request_id: int, types=REQUIRED_DOCUMENTS) -> dict:
        payload = None
        for document_type in types:
            response = client.post(
                f"/visa/{request_id}/documents",
                json={
                    "document_type": document_type,
                    "document_url": f"/uploads/documents/{document_type}.pdf",
                },
                headers=actor.headers,
            )
            assert response.status_code == 201, response.get_json()
            payload = response.get_json()["data"]
        return payload

    def pay(actor, request_id: int) -> dict:
        response = client.post(
            f"/payments/visa-requests/{request_id}/upload",
            json={"payment_screenshot_url": "/uploads/payments/receipt.png"},
            headers=actor.headers,
        )
        assert response.status_code == 201, response.get_json()
        return response.get_json()["data"]

    def verify(admin_actor, request_id: int) -> dict:
        response = client.post(
            f"/visa/{request_id}/payment/verify",
            json={"action": "verify"},
            headers=admin_actor.headers,
        )
        assert response.status_code == 200, response.get_json()
        return response.get_json()["data"]

    def assign(admin_actor, request_id: int, office_id: int):
        return client.put(
            f"/visa/{request_id}/assign-office",
            json={"office_id": office_id},
            headers=admin_actor.headers,
        )

    def to_verified(applicant_actor, admin_actor) -> int:
        request_id = create(applicant_actor)
        upload_documents(applicant_actor, request_id)
        pay(applicant_actor, request_id)
        verify(admin_actor, request_id)
        return request_id

    return SimpleNamespace(
        create=create,
        upload_documents=upload_documents,
        pay=pay,
        verify=verify,
        assign=assign,
        to_verified=to_verified,
    )
