"""Tests covering security and hardening features."""

from __future__ import annotations

import sys
from pathlib import Path

from flask import Flask

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app
from config import Config
from services.identity import Authenticator
from utils.errors import Unauthenticated


class _SecurityBaseConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False


def _build_app(tmp_path: Path, authenticator=None, **overrides) -> Flask:
    upload_dir = tmp_path / "uploads"

    class TestConfig(_SecurityBaseConfig):
        UPLOAD_DIR = str(upload_dir)

    for key, value in overrides.items():
        setattr(TestConfig, key, value)

    return create_app(TestConfig, authenticator=authenticator)


def test_cors_allows_configured_origin(tmp_path):
    app = _build_app(tmp_path, CORS_ORIGINS=["https://client.example"])
    client = app.test_client()

    response = client.get(
        "/health", headers={"Origin": "https://client.example"}
    )

    assert response.status_code == 200
    assert response.headers.get("Access-Control-Allow-Origin") == "https://client.example"
    assert response.headers.get("X-Request-ID")


def test_rate_limit_exceeded_returns_json(tmp_path):
    app = _build_app(tmp_path, RATE_LIMIT="2 per minute")
    client = app.test_client()

    client.get("/health")
    client.get("/health")
    response = client.get("/health")

    assert response.status_code == 429
    payload = response.get_json()
    assert payload["status"] == "error"
    assert payload["data"]["error"] == "Too Many Requests"
    assert "request_id" in payload


def test_json_error_shape_for_invalid_request(tmp_path):
    app = _build_app(tmp_path)
    client = app.test_client()

    response = client.post(
        "/auth/register",
        data="not-json",
        content_type="text/plain",
        headers={"X-Request-ID": "req-123"},
    )

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["status"] == "error"
    assert payload["data"]["error"] == "ValidationError"
    assert "Request content type" in payload["message"]
    assert payload["request_id"] == "req-123"
    assert response.headers["X-Request-ID"] == "req-123"


def test_missing_bearer_token_is_unauthenticated(tmp_path):
    app = _build_app(tmp_path)
    client = app.test_client()

    response = client.get("/visa")

    assert response.status_code == 401
    assert response.get_json()["data"]["error"] == "Unauthenticated"


def test_garbage_token_is_unauthenticated(tmp_path):
    app = _build_app(tmp_path)
    client = app.test_client()

    response = client.get("/visa", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.get_json()["data"]["error"] == "Unauthenticated"


class _RejectEverything(Authenticator):
    def identify(self, credential: str) -> int:
        raise Unauthenticated("Credential scheme disabled.")


def test_authenticator_is_pluggable(tmp_path):
    app = _build_app(tmp_path, authenticator=_RejectEverything())
    client = app.test_client()

    response = client.get("/notifications", headers={"Authorization": "Bearer anything"})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Credential scheme disabled."
