"""Payment endpoints: receipt upload, per-request details, admin statistics."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, request
from werkzeug.datastructures import FileStorage

from services import payments
from services.identity import authenticate
from storage import FileStore
from utils.request_validation import parse_json_request, required_string
from utils.responses import success

payments_bp = Blueprint("payments", __name__)


@payments_bp.route("/visa-requests/<int:request_id>/upload", methods=["POST"])
def upload_payment(request_id: int):
    """Upload a payment receipt as a file or as an already stored URL."""
    actor = authenticate(request)

    file = request.files.get("payment_screenshot")
    if isinstance(file, FileStorage):
        screenshot_url = FileStore.from_app().save(file, f"payments/{request_id}")
    else:
        payload = parse_json_request(request, required_keys=("payment_screenshot_url",))
        screenshot_url = required_string(payload, "payment_screenshot_url", max_length=512)

    payment = payments.upload_payment_screenshot(actor, request_id, screenshot_url)
    return success(
        "Payment uploaded successfully. Awaiting verification.",
        {"payment": payment.to_dict(), "visa_request": payment.visa_request.to_dict()},
        HTTPStatus.CREATED,
    )


@payments_bp.route("/visa-requests/<int:request_id>", methods=["GET"])
def payment_details(request_id: int):
    actor = authenticate(request)
    details = payments.payment_details(actor, request_id)
    return success("Payment details retrieved successfully.", details)


@payments_bp.route("/statistics", methods=["GET"])
def payment_statistics():
    actor = authenticate(request)
    return success(
        "Payment statistics retrieved successfully.", payments.payment_statistics(actor)
    )
