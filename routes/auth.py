"""Authentication blueprint providing register, login, and profile endpoints."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from flask_jwt_extended import create_access_token
from sqlalchemy import func

from models import db
from models.enums import UserRole
from models.user import User
from services.identity import authenticate
from services.transactions import atomic
from utils.errors import Conflict, Unauthenticated, ValidationError
from utils.request_validation import (
    optional_string,
    parse_enum,
    parse_int,
    parse_json_request,
    required_string,
)
from utils.responses import success
from utils.timeutils import utcnow

SELF_SERVICE_ROLES = (UserRole.APPLICANT, UserRole.OFFICE)
auth_bp = Blueprint("auth", __name__)


def _normalize_email(raw_email: str | None) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return (raw_email or "").strip().lower()


def _parse_visa_limit(value: object) -> int:
    if value is None or value == "":
        return int(current_app.config.get("DEFAULT_VISA_LIMIT", 5))
    limit = parse_int(value, "visa_limit")
    if limit < 1:
        raise ValidationError("visa_limit must be at least 1.")
    return limit


def _apply_office_details(user: User, payload: dict) -> None:
    if "address" in payload:
        user.address = optional_string(payload, "address", max_length=255)
    if "governorate" in payload:
        user.governorate = optional_string(payload, "governorate", max_length=120)
    if "logo_url" in payload:
        user.logo_url = optional_string(payload, "logo_url", max_length=512)


def _issue_token(user: User) -> str:
    return create_access_token(identity=str(user.id))


@auth_bp.route("/register", methods=["POST"])
def register():
    """Register an applicant or an office account."""
    payload = parse_json_request(request, required_keys=("email", "password"))
    email = _normalize_email(payload.get("email"))
    password = (payload.get("password") or "").strip()
    if not email or not password:
        raise ValidationError("Email and password are required.")

    role = parse_enum(
        payload.get("role") or UserRole.APPLICANT.value,
        UserRole,
        "role",
        allowed=SELF_SERVICE_ROLES,
    )

    user = User(
        email=email,
        role=role,
        name=optional_string(payload, "name", max_length=120) or "",
        phone_number=optional_string(payload, "phone_number", max_length=32),
    )
    user.set_password(password)
    if role == UserRole.OFFICE:
        _apply_office_details(user, payload)
        user.visa_limit = _parse_visa_limit(payload.get("visa_limit"))
        user.active_visa_requests = 0

    with atomic("register user", conflict_message="A user with that email already exists."):
        # Case-insensitive unique check
        existing = User.query.filter(func.lower(User.email) == email).first()
        if existing is not None:
            raise Conflict("A user with that email already exists.")
        db.session.add(user)

    current_app.logger.info("Registered %s user %s", role.value, user.id)
    return success(
        "User registered successfully.",
        {"user": user.to_dict(), "access_token": _issue_token(user)},
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate a user and return a JWT access token."""
    payload = parse_json_request(request, required_keys=("email", "password"))
    email = _normalize_email(payload.get("email"))
    password = (payload.get("password") or "").strip()

    # Case-insensitive lookup
    user = User.query.filter(func.lower(User.email) == email).first()
    if user is None or not user.check_password(password):
        raise Unauthenticated("Invalid email or password.")
    if not user.is_active:
        raise Unauthenticated("This account has been deactivated.")

    with atomic("record login"):
        user.last_login_at = utcnow()

    return success(
        "Login successful.",
        {"user": user.to_dict(), "access_token": _issue_token(user)},
    )


@auth_bp.route("/profile", methods=["GET"])
def get_profile():
    user = authenticate(request)
    return success("Profile retrieved successfully.", {"user": user.to_dict()})


@auth_bp.route("/profile", methods=["PUT"])
def update_profile():
    """Update the caller's own profile; offices may also edit their office details."""
    user = authenticate(request)
    payload = parse_json_request(request)

    with atomic("update profile"):
        if "name" in payload:
            user.name = required_string(payload, "name", max_length=120)
        if "phone_number" in payload:
            user.phone_number = optional_string(payload, "phone_number", max_length=32)
        if "profile_image_url" in payload:
            user.profile_image_url = optional_string(
                payload, "profile_image_url", max_length=512
            )
        if user.is_office:
            _apply_office_details(user, payload)
            if "visa_limit" in payload:
                limit = _parse_visa_limit(payload.get("visa_limit"))
                if limit < (user.active_visa_requests or 0):
                    raise ValidationError(
                        "visa_limit cannot be lower than the number of active visa requests."
                    )
                user.visa_limit = limit

    return success("Profile updated successfully.", {"user": user.to_dict()})
