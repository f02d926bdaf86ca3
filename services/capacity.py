"""Office capacity ledger and office join requests.

Each office carries one ``active_visa_requests`` counter checked against its
``visa_limit``. The counter is incremented only by :func:`reserve_slot` (on
assignment) and decremented only by :func:`release_slot` (when a request leaves
the office's hands). Both are conditional UPDATE statements, so the limit is
re-checked by the database at write time.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from models import db
from models.enums import JoinRequestStatus, UserRole, VisaStatus
from models.office_join_request import OfficeJoinRequest
from models.user import User
from utils.errors import Conflict, InvalidState
from utils.timeutils import utcnow

from .access import get_office, get_visa_request, require_role
from .transactions import atomic


def available_offices(governorate: str | None = None) -> list[User]:
    """Return offices with spare capacity, optionally within a governorate."""

    query = User.query.filter(
        User.role == UserRole.OFFICE,
        User.is_active.is_(True),
        User.visa_limit.isnot(None),
        User.active_visa_requests < User.visa_limit,
    )
    if governorate:
        query = query.filter(db.func.lower(User.governorate) == governorate.strip().lower())
    return query.order_by(User.active_visa_requests.asc(), User.id.asc()).all()


def reserve_slot(office_id: int) -> None:
    """Increment an office's active count if it is below its limit.

    Must run inside an open unit of work; raises ``InvalidState`` when full.
    """

    result = db.session.execute(
        update(User)
        .where(
            User.id == office_id,
            User.role == UserRole.OFFICE,
            User.visa_limit.isnot(None),
            User.active_visa_requests < User.visa_limit,
        )
        .values(
            active_visa_requests=User.active_visa_requests + 1,
            last_active_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidState("Office has reached its visa request limit.")
    current_app.logger.info("Reserved capacity slot for office %s", office_id)


def release_slot(office_id: int) -> None:
    """Decrement an office's active count, never below zero."""

    db.session.execute(
        update(User)
        .where(User.id == office_id, User.active_visa_requests > 0)
        .values(active_visa_requests=User.active_visa_requests - 1)
        .execution_options(synchronize_session=False)
    )
    current_app.logger.info("Released capacity slot for office %s", office_id)


def request_to_join(actor: User, request_id: int) -> OfficeJoinRequest:
    """Record an office's request to handle a visa request awaiting assignment."""

    require_role(actor, UserRole.OFFICE, message="Only offices can request to join a visa chat.")

    with atomic(
        "request to join visa chat",
        conflict_message="Office has already requested to join this visa chat.",
    ):
        visa_request = get_visa_request(request_id)
        if visa_request.status != VisaStatus.PAYMENT_VERIFIED:
            raise InvalidState("Visa request is not awaiting an office.")

        office = get_office(actor.id, lock=True)
        if not office.has_capacity():
            raise InvalidState("Office has reached its visa request limit.")

        existing = OfficeJoinRequest.query.filter_by(
            visa_request_id=visa_request.id, office_id=office.id
        ).first()
        if existing is not None and existing.status == JoinRequestStatus.PENDING:
            raise Conflict("Office has already requested to join this visa chat.")

        # A request that went back to paymentVerified reopens earlier settled asks.
        if existing is not None:
            join_request = existing
            join_request.status = JoinRequestStatus.PENDING
            join_request.updated_at = utcnow()
        else:
            join_request = OfficeJoinRequest(
                visa_request_id=visa_request.id,
                office_id=office.id,
                status=JoinRequestStatus.PENDING,
            )
            db.session.add(join_request)

    current_app.logger.info(
        "Office %s requested to join visa request %s", actor.id, request_id
    )
    return join_request


def list_join_requests(actor: User, request_id: int) -> list[OfficeJoinRequest]:
    require_role(actor, UserRole.ADMIN)
    visa_request = get_visa_request(request_id)
    return (
        OfficeJoinRequest.query.filter_by(visa_request_id=visa_request.id)
        .order_by(OfficeJoinRequest.created_at.asc(), OfficeJoinRequest.id.asc())
        .all()
    )


def settle_join_requests(request_id: int, chosen_office_id: int) -> None:
    """Approve the chosen office's join request and reject every other one."""

    OfficeJoinRequest.query.filter(
        OfficeJoinRequest.visa_request_id == request_id,
        OfficeJoinRequest.office_id == chosen_office_id,
    ).update({"status": JoinRequestStatus.APPROVED}, synchronize_session=False)
    OfficeJoinRequest.query.filter(
        OfficeJoinRequest.visa_request_id == request_id,
        OfficeJoinRequest.office_id != chosen_office_id,
        OfficeJoinRequest.status == JoinRequestStatus.PENDING,
    ).update({"status": JoinRequestStatus.REJECTED}, synchronize_session=False)
