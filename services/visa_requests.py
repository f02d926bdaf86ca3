"""Visa request lifecycle state machine.

    pending -> documentsPending -> paymentPending -> paymentVerified
            -> assigned -> processing -> completed

``rejected`` is reachable from every non-terminal state. ``completed`` and
``rejected`` are terminal. Document intake and the payment subledger drive
the early transitions; this module owns creation, office assignment, and the
admin/office status updates.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from models import db
from models.enums import TERMINAL_STATUSES, JoinRequestStatus, UserRole, VisaStatus
from models.office_join_request import OfficeJoinRequest
from models.user import User
from models.visa_request import VisaRequest
from utils.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from utils.timeutils import utcnow

from . import capacity, files
from .access import ensure_can_access, get_office, get_visa_request, require_role
from .chat import ensure_chat, post_event, sync_chat_parties
from .transactions import atomic

OFFICE_TARGET_STATUSES = frozenset({VisaStatus.PROCESSING, VisaStatus.COMPLETED})
OFFICE_TRANSITIONS = {
    VisaStatus.ASSIGNED: frozenset({VisaStatus.PROCESSING, VisaStatus.COMPLETED}),
    VisaStatus.PROCESSING: frozenset({VisaStatus.COMPLETED}),
}

STATUS_LABELS = {
    VisaStatus.PENDING: "pending",
    VisaStatus.DOCUMENTS_PENDING: "awaiting documents",
    VisaStatus.PAYMENT_PENDING: "awaiting payment",
    VisaStatus.PAYMENT_VERIFIED: "payment verified",
    VisaStatus.ASSIGNED: "assigned to an office",
    VisaStatus.PROCESSING: "processing",
    VisaStatus.COMPLETED: "completed",
    VisaStatus.REJECTED: "rejected",
}


def apply_status(visa_request: VisaRequest, new_status: VisaStatus) -> None:
    """Move a request to ``new_status`` and keep its dependent records consistent.

    Terminal requests release the applicant's active slot. A request leaving the
    office's hands releases the office's capacity, and the office reference is
    cleared unless the new status still carries an office.
    """

    previous_office_id = visa_request.office_id
    visa_request.status = new_status
    visa_request.updated_at = utcnow()

    if new_status in TERMINAL_STATUSES:
        visa_request.active_applicant_id = None

    if previous_office_id is not None and (
        new_status.is_terminal or not new_status.is_office_bearing
    ):
        capacity.release_slot(previous_office_id)
        if not new_status.is_office_bearing:
            visa_request.office_id = None
            sync_chat_parties(visa_request)


def create_request(actor: User, passport_number: str) -> VisaRequest:
    """Open a new request for an applicant with no other active request."""

    require_role(actor, UserRole.APPLICANT, message="Only applicants can create visa requests.")
    if not passport_number:
        raise ValidationError("Passport number is required.")

    fee = Decimal(str(current_app.config.get("VISA_FEE", 2500)))
    with atomic(
        "create visa request",
        conflict_message="You already have an active visa request.",
    ):
        active = VisaRequest.query.filter(
            VisaRequest.applicant_id == actor.id,
            VisaRequest.status.notin_(list(TERMINAL_STATUSES)),
        ).first()
        if active is not None:
            raise Conflict("You already have an active visa request.")

        visa_request = VisaRequest(
            applicant_id=actor.id,
            active_applicant_id=actor.id,
            passport_number=passport_number,
            status=VisaStatus.PENDING,
            payment_amount=fee,
        )
        db.session.add(visa_request)
        db.session.flush()
        ensure_chat(visa_request)

    current_app.logger.info(
        "Visa request %s created by applicant %s", visa_request.id, actor.id
    )
    return visa_request


def list_requests(actor: User) -> list[VisaRequest]:
    """Return the requests visible to the actor, newest first."""

    query = VisaRequest.query
    if actor.role == UserRole.APPLICANT:
        query = query.filter(VisaRequest.applicant_id == actor.id)
    elif actor.role == UserRole.OFFICE:
        query = query.filter(VisaRequest.office_id == actor.id)
    elif actor.role != UserRole.ADMIN:
        raise Forbidden("Forbidden.")
    return query.order_by(VisaRequest.created_at.desc(), VisaRequest.id.desc()).all()


def get_request_details(actor: User, request_id: int) -> dict:
    visa_request = get_visa_request(request_id)
    ensure_can_access(visa_request, actor)

    office = visa_request.office
    admin = visa_request.admin
    return {
        "visa_request": visa_request.to_dict(),
        "documents": [document.to_dict() for document in visa_request.documents],
        "payments": [payment.to_dict() for payment in visa_request.payments],
        "applicant": visa_request.applicant.to_dict(include_office=False),
        "office": office.to_dict() if office is not None else None,
        "admin": admin.to_dict(include_office=False) if admin is not None else None,
        "chat": visa_request.chat.to_dict() if visa_request.chat is not None else None,
    }


def update_status(
    actor: User,
    request_id: int,
    new_status: VisaStatus,
    visa_document_url: str | None = None,
) -> VisaRequest:
    """Apply an admin or office status change.

    Admins may set any status on a non-terminal request; offices may only move
    their assigned requests forward to processing or completed.
    """

    require_role(
        actor,
        UserRole.ADMIN,
        UserRole.OFFICE,
        message="Only admins and offices can update visa status.",
    )
    if visa_document_url and new_status != VisaStatus.COMPLETED:
        raise ValidationError("visa_document_url can only be set when completing a request.")

    with atomic("update visa status"):
        visa_request = get_visa_request(request_id, lock=True)
        ensure_can_access(visa_request, actor)
        current = VisaStatus(visa_request.status)
        files.ensure_can_attach(actor, visa_document_url)

        if current.is_terminal:
            raise InvalidState("Visa request is already completed or rejected.")

        if actor.role == UserRole.OFFICE:
            if new_status not in OFFICE_TARGET_STATUSES:
                raise Forbidden("Offices can only change status to processing or completed.")
            if new_status not in OFFICE_TRANSITIONS.get(current, frozenset()):
                raise InvalidState(
                    f"Cannot change status from {current.value} to {new_status.value}."
                )
        else:
            if new_status == current:
                raise InvalidState(f"Visa request is already {current.value}.")
            if new_status in (VisaStatus.ASSIGNED, VisaStatus.PROCESSING) and visa_request.office_id is None:
                raise InvalidState("Assign an office before moving the request to this status.")

        post_event(
            visa_request,
            f"Visa request is now {STATUS_LABELS[new_status]}.",
            actor=actor,
            metadata={
                "event": "status_changed",
                "from": current.value,
                "to": new_status.value,
                "changed_by": actor.id,
            },
        )
        apply_status(visa_request, new_status)
        if new_status == VisaStatus.COMPLETED and visa_document_url:
            visa_request.visa_document_url = visa_document_url

    current_app.logger.info(
        "Visa request %s moved from %s to %s by user %s",
        request_id,
        current.value,
        new_status.value,
        actor.id,
    )
    return visa_request


def assign_office(actor: User, request_id: int, office_id: int) -> VisaRequest:
    """Hand a payment-verified request to an office with spare capacity.

    One transaction sets the office/admin/status, takes a capacity slot,
    settles competing join requests, and moves the chat to the office. The
    status guard is enforced by a conditional UPDATE so that only one of two
    concurrent assignments can succeed.
    """

    require_role(actor, UserRole.ADMIN, message="Only admins can assign offices.")

    with atomic("assign office"):
        visa_request = get_visa_request(request_id, lock=True)
        if visa_request.status != VisaStatus.PAYMENT_VERIFIED:
            raise InvalidState(
                "Visa request must be paid and verified before assigning an office."
            )
        office = get_office(office_id)

        result = db.session.execute(
            update(VisaRequest)
            .where(
                VisaRequest.id == visa_request.id,
                VisaRequest.status == VisaStatus.PAYMENT_VERIFIED,
            )
            .values(
                status=VisaStatus.ASSIGNED,
                office_id=office.id,
                admin_id=actor.id,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState(
                "Visa request must be paid and verified before assigning an office."
            )

        capacity.reserve_slot(office.id)
        capacity.settle_join_requests(visa_request.id, office.id)

        db.session.refresh(visa_request)
        sync_chat_parties(visa_request)
        post_event(
            visa_request,
            f"{office.name or 'An office'} has been assigned to this visa request.",
            actor=actor,
            metadata={"event": "office_assigned", "office_id": office.id},
        )

    current_app.logger.info(
        "Office %s assigned to visa request %s by admin %s", office_id, request_id, actor.id
    )
    return visa_request


def approve_join_request(actor: User, request_id: int, office_id: int) -> VisaRequest:
    """Assign the request to an office that asked to join it."""

    require_role(actor, UserRole.ADMIN, message="Only admins can approve join requests.")
    join_request = OfficeJoinRequest.query.filter_by(
        visa_request_id=request_id, office_id=office_id
    ).first()
    if join_request is None:
        raise NotFound("Join request not found.")
    if join_request.status != JoinRequestStatus.PENDING:
        raise InvalidState("Join request has already been settled.")
    return assign_office(actor, request_id, office_id)
