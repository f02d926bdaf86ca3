"""Role- and ownership-based access rules shared by every workflow operation."""

from __future__ import annotations

from models import db
from models.enums import UserRole
from models.user import User
from models.visa_request import VisaRequest
from utils.errors import Forbidden, NotFound


def get_visa_request(request_id: int, *, lock: bool = False) -> VisaRequest:
    """Load a visa request, optionally re-reading it under a row lock."""

    if lock:
        visa_request = db.session.get(
            VisaRequest, request_id, with_for_update=True, populate_existing=True
        )
    else:
        visa_request = db.session.get(VisaRequest, request_id)
    if visa_request is None:
        raise NotFound("Visa request not found.")
    return visa_request


def can_access(visa_request: VisaRequest, actor: User) -> bool:
    if actor.role == UserRole.ADMIN:
        return True
    if actor.role == UserRole.APPLICANT:
        return visa_request.applicant_id == actor.id
    if actor.role == UserRole.OFFICE:
        return visa_request.office_id is not None and visa_request.office_id == actor.id
    return False


def ensure_can_access(visa_request: VisaRequest, actor: User) -> None:
    """Applicants act on their own requests, offices on assigned ones, admins on any."""

    if not can_access(visa_request, actor):
        raise Forbidden("You do not have access to this visa request.")


def require_role(actor: User, *roles: UserRole, message: str | None = None) -> None:
    if actor.role not in roles:
        names = " or ".join(role.value for role in roles)
        raise Forbidden(message or f"Only {names} users can perform this action.")


def get_office(office_id: int, *, lock: bool = False) -> User:
    if lock:
        office = db.session.get(User, office_id, with_for_update=True, populate_existing=True)
    else:
        office = db.session.get(User, office_id)
    if office is None or office.role != UserRole.OFFICE:
        raise NotFound("Office not found.")
    return office
