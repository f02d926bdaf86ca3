"""Uniform JSON response envelope."""

from __future__ import annotations

from http import HTTPStatus

from flask import jsonify


def success(message: str, data: dict | None = None, status: int = HTTPStatus.OK):
    """Return a ``{status, message, data}`` success envelope."""

    return (
        jsonify({"status": "success", "message": message, "data": data or {}}),
        status,
    )


def error_payload(message: str, kind: str, request_id: str) -> dict:
    return {
        "status": "error",
        "message": message,
        "data": {"error": kind},
        "request_id": request_id,
    }
