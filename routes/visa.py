"""Visa request blueprint: lifecycle, documents, and payment submission."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, request
from werkzeug.datastructures import FileStorage

from models.enums import DocumentType, VisaStatus
from services import documents, payments, visa_requests
from services.identity import authenticate
from storage import FileStore
from utils.errors import ValidationError
from utils.request_validation import (
    optional_string,
    parse_enum,
    parse_int,
    parse_json_request,
    required_string,
)
from utils.responses import success

visa_bp = Blueprint("visa", __name__)


@visa_bp.route("", methods=["GET"])
def list_visa_requests():
    actor = authenticate(request)
    items = visa_requests.list_requests(actor)
    return success(
        "Visa requests retrieved successfully.",
        {"visa_requests": [item.to_dict() for item in items]},
    )


@visa_bp.route("", methods=["POST"])
def create_visa_request():
    """Open a new visa request for the calling applicant."""
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("passport_number",))
    visa_request = visa_requests.create_request(
        actor, required_string(payload, "passport_number", max_length=64)
    )
    return success(
        "Visa request created successfully.",
        {"visa_request": visa_request.to_dict()},
        HTTPStatus.CREATED,
    )


@visa_bp.route("/<int:request_id>", methods=["GET"])
def visa_request_details(request_id: int):
    actor = authenticate(request)
    details = visa_requests.get_request_details(actor, request_id)
    return success("Visa request details retrieved successfully.", details)


@visa_bp.route("/<int:request_id>/documents", methods=["GET"])
def list_visa_documents(request_id: int):
    actor = authenticate(request)
    items = documents.list_documents(actor, request_id)
    return success(
        "Documents retrieved successfully.",
        {"documents": [item.to_dict() for item in items]},
    )


@visa_bp.route("/<int:request_id>/documents", methods=["POST"])
def upload_visa_document(request_id: int):
    """Attach a document, either as a multipart file or as an already stored URL."""
    actor = authenticate(request)

    file = request.files.get("document")
    if isinstance(file, FileStorage):
        form = request.form
        document_type = parse_enum(form.get("document_type"), DocumentType, "document_type")
        document_url = FileStore.from_app().save(file, f"visa_requests/{request_id}")
        document_name = form.get("document_name") or file.filename
    else:
        payload = parse_json_request(request, required_keys=("document_type", "document_url"))
        document_type = parse_enum(payload.get("document_type"), DocumentType, "document_type")
        document_url = required_string(payload, "document_url", max_length=512)
        document_name = optional_string(payload, "document_name", max_length=255)

    document = documents.upload_document(
        actor, request_id, document_type, document_url, document_name
    )
    visa_request = document.visa_request
    return success(
        "Document uploaded successfully.",
        {"document": document.to_dict(), "visa_request": visa_request.to_dict()},
        HTTPStatus.CREATED,
    )


@visa_bp.route("/<int:request_id>/status", methods=["PUT"])
def update_visa_status(request_id: int):
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("status",))
    new_status = parse_enum(payload.get("status"), VisaStatus, "status")
    visa_document_url = optional_string(payload, "visa_document_url", max_length=512)
    visa_request = visa_requests.update_status(actor, request_id, new_status, visa_document_url)
    return success(
        "Visa status updated successfully.", {"visa_request": visa_request.to_dict()}
    )


@visa_bp.route("/<int:request_id>/assign-office", methods=["PUT"])
def assign_visa_office(request_id: int):
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("office_id",))
    office_id = parse_int(payload.get("office_id"), "office_id")
    visa_request = visa_requests.assign_office(actor, request_id, office_id)
    return success(
        "Office assigned successfully.", {"visa_request": visa_request.to_dict()}
    )


@visa_bp.route("/<int:request_id>/payment", methods=["POST"])
def submit_visa_payment(request_id: int):
    """Record a reference-number payment for review by the administration."""
    actor = authenticate(request)
    payload = parse_json_request(
        request, required_keys=("reference_number", "screenshot_url")
    )
    payment = payments.submit_payment(
        actor,
        request_id,
        required_string(payload, "reference_number", max_length=128),
        required_string(payload, "screenshot_url", max_length=512),
    )
    return success(
        "Payment submitted successfully.", {"payment": payment.to_dict()}, HTTPStatus.CREATED
    )


@visa_bp.route("/<int:request_id>/payment/verify", methods=["POST"])
def review_visa_payment(request_id: int):
    """Verify or reject the pending payment of a request."""
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("action",))
    action = payload.get("action")
    note = optional_string(payload, "note", max_length=1000)

    if action == "verify":
        visa_request = payments.verify_payment(actor, request_id, note)
        return success(
            "Payment verified successfully.", {"visa_request": visa_request.to_dict()}
        )
    if action == "reject":
        rejected = payments.reject_payment(actor, request_id, note)
        return success(
            "Payment rejected.", {"payments": [payment.to_dict() for payment in rejected]}
        )
    raise ValidationError("action must be one of: verify, reject.")
