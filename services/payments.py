"""Payment subledger: submissions, admin verification, and reporting."""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from flask import current_app

from models import db
from models.enums import MessageType, PaymentMethod, PaymentStatus, UserRole, VisaStatus
from models.payment import Payment
from models.user import User
from models.visa_request import VisaRequest
from utils.errors import InvalidState, ValidationError
from utils.timeutils import utcnow

from . import files
from .access import ensure_can_access, get_visa_request, require_role
from .chat import post_event
from .transactions import atomic
from .visa_requests import apply_status

SCREENSHOT_UPLOAD_STATUSES = frozenset({VisaStatus.DOCUMENTS_PENDING, VisaStatus.PAYMENT_PENDING})
VERIFIABLE_STATUSES = frozenset(
    {VisaStatus.PENDING, VisaStatus.DOCUMENTS_PENDING, VisaStatus.PAYMENT_PENDING}
)


def _platform_fee() -> Decimal:
    return Decimal(str(current_app.config.get("VISA_FEE", 2500)))


def _pending_payments(visa_request: VisaRequest) -> list[Payment]:
    return (
        Payment.query.filter_by(visa_request_id=visa_request.id, status=PaymentStatus.PENDING)
        .order_by(Payment.id.asc())
        .all()
    )


def _load_owned_request(actor: User, request_id: int) -> VisaRequest:
    require_role(actor, UserRole.APPLICANT, message="Only applicants can submit payments.")
    visa_request = get_visa_request(request_id, lock=True)
    ensure_can_access(visa_request, actor)
    return visa_request


def upload_payment_screenshot(actor: User, request_id: int, screenshot_url: str) -> Payment:
    """Record a receipt screenshot for the platform fee and await verification."""

    if not screenshot_url:
        raise ValidationError("payment_screenshot_url is required.")

    fee = _platform_fee()
    with atomic("upload payment"):
        visa_request = _load_owned_request(actor, request_id)
        files.ensure_can_attach(actor, screenshot_url)
        if visa_request.status not in SCREENSHOT_UPLOAD_STATUSES:
            raise InvalidState("Visa request is not waiting for payment.")

        payment = Payment(
            visa_request_id=visa_request.id,
            amount=fee,
            payment_method=PaymentMethod.SCREENSHOT,
            status=PaymentStatus.PENDING,
            screenshot_url=screenshot_url,
        )
        db.session.add(payment)
        db.session.flush()

        visa_request.payment_screenshot_url = screenshot_url
        if visa_request.status != VisaStatus.PAYMENT_PENDING:
            apply_status(visa_request, VisaStatus.PAYMENT_PENDING)

        post_event(
            visa_request,
            f"Payment receipt of {fee:.2f} uploaded, awaiting verification by the administration.",
            actor=actor,
            message_type=MessageType.PAYMENT,
            file_url=screenshot_url,
            metadata={"payment_id": payment.id, "amount": float(fee)},
        )

    current_app.logger.info(
        "Payment %s uploaded for visa request %s", payment.id, request_id
    )
    return payment


def submit_payment(
    actor: User, request_id: int, reference_number: str, screenshot_url: str
) -> Payment:
    """Log a reference-number payment; the request stays in paymentPending."""

    if not reference_number or not screenshot_url:
        raise ValidationError("reference_number and screenshot_url are required.")

    with atomic("submit payment"):
        visa_request = _load_owned_request(actor, request_id)
        files.ensure_can_attach(actor, screenshot_url)
        if visa_request.status != VisaStatus.PAYMENT_PENDING:
            raise InvalidState("Visa request is not waiting for payment.")

        payment = Payment(
            visa_request_id=visa_request.id,
            amount=visa_request.payment_amount,
            payment_method=PaymentMethod.INSTAPAY,
            status=PaymentStatus.PENDING,
            reference_number=reference_number,
            screenshot_url=screenshot_url,
        )
        db.session.add(payment)
        visa_request.payment_reference = reference_number
        visa_request.payment_screenshot_url = screenshot_url
        visa_request.updated_at = utcnow()

    current_app.logger.info(
        "Payment reference submitted for visa request %s", request_id
    )
    return payment


def verify_payment(actor: User, request_id: int, note: str | None = None) -> VisaRequest:
    """Accept the pending payment and move the request to paymentVerified."""

    require_role(actor, UserRole.ADMIN, message="Only admins can verify payments.")

    with atomic("verify payment"):
        visa_request = get_visa_request(request_id, lock=True)
        if visa_request.status not in VERIFIABLE_STATUSES:
            raise InvalidState("Visa request is not awaiting payment verification.")
        pending = _pending_payments(visa_request)
        if not pending:
            raise InvalidState("There is no pending payment to verify.")

        now = utcnow()
        for payment in pending:
            payment.status = PaymentStatus.VERIFIED
            payment.verified_by = actor.id
            payment.verified_at = now
            payment.note = note

        visa_request.payment_verified = True
        visa_request.payment_verified_at = now
        apply_status(visa_request, VisaStatus.PAYMENT_VERIFIED)
        post_event(
            visa_request,
            "Payment verified and receipt accepted.",
            actor=actor,
            metadata={
                "event": "payment_verified",
                "verified_by": actor.id,
                "payment_ids": [payment.id for payment in pending],
            },
        )

    current_app.logger.info(
        "Payment for visa request %s verified by admin %s", request_id, actor.id
    )
    return visa_request


def reject_payment(actor: User, request_id: int, note: str | None = None) -> list[Payment]:
    """Reject the pending payment; the request's status is left untouched."""

    require_role(actor, UserRole.ADMIN, message="Only admins can reject payments.")

    with atomic("reject payment"):
        visa_request = get_visa_request(request_id, lock=True)
        if visa_request.is_terminal:
            raise InvalidState("Visa request is already completed or rejected.")
        pending = _pending_payments(visa_request)
        if not pending:
            raise InvalidState("There is no pending payment to reject.")

        now = utcnow()
        for payment in pending:
            payment.status = PaymentStatus.REJECTED
            payment.verified_by = actor.id
            payment.verified_at = now
            payment.note = note

    current_app.logger.info(
        "Payment for visa request %s rejected by admin %s", request_id, actor.id
    )
    return pending


def payment_details(actor: User, request_id: int) -> dict:
    visa_request = get_visa_request(request_id)
    ensure_can_access(visa_request, actor)
    return {
        "payments": [payment.to_dict() for payment in visa_request.payments],
        "payment_verified": bool(visa_request.payment_verified),
        "payment_verified_at": (
            visa_request.payment_verified_at.isoformat()
            if visa_request.payment_verified_at
            else None
        ),
    }


def _accumulate(bucket: dict, payment: Payment) -> None:
    amount = float(payment.amount or 0)
    bucket["count"] += 1
    bucket["amount"] += amount
    if payment.status == PaymentStatus.VERIFIED:
        bucket["verified_count"] += 1
        bucket["verified_amount"] += amount


def _empty_bucket() -> dict:
    return {"count": 0, "amount": 0.0, "verified_count": 0, "verified_amount": 0.0}


def payment_statistics(actor: User, now: datetime | None = None) -> dict:
    """Totals over all payments plus a month-by-month view of the current year."""

    require_role(actor, UserRole.ADMIN, message="Only admins can view payment statistics.")
    now = now or utcnow()
    year_start = datetime(now.year, 1, 1)

    totals = _empty_bucket()
    monthly: OrderedDict[int, dict] = OrderedDict()
    for payment in Payment.query.order_by(Payment.created_at.asc()):
        _accumulate(totals, payment)
        if payment.created_at and year_start <= payment.created_at <= now:
            month = payment.created_at.month
            if month not in monthly:
                monthly[month] = _empty_bucket()
            _accumulate(monthly[month], payment)

    return {
        "total_statistics": {
            "total_count": totals["count"],
            "total_amount": totals["amount"],
            "verified_count": totals["verified_count"],
            "verified_amount": totals["verified_amount"],
        },
        "monthly_statistics": [
            {"month": month, **bucket} for month, bucket in monthly.items()
        ],
    }
