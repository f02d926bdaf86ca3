"""Office directory and office join request endpoints."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, request

from services import capacity, visa_requests
from services.access import get_office
from services.identity import authenticate
from utils.responses import success

offices_bp = Blueprint("offices", __name__)


@offices_bp.route("/available", methods=["GET"])
def available_offices():
    """List offices that can take another request, optionally by governorate."""
    authenticate(request)
    governorate = (request.args.get("governorate") or "").strip() or None
    offices = capacity.available_offices(governorate)
    return success(
        "Available offices retrieved successfully.",
        {"offices": [office.to_dict() for office in offices]},
    )


@offices_bp.route("/<int:office_id>", methods=["GET"])
def office_details(office_id: int):
    authenticate(request)
    office = get_office(office_id)
    return success("Office retrieved successfully.", {"office": office.to_dict()})


@offices_bp.route("/visa-requests/<int:request_id>/join", methods=["POST"])
def request_to_join(request_id: int):
    actor = authenticate(request)
    join_request = capacity.request_to_join(actor, request_id)
    return success(
        "Join request submitted successfully.",
        {"join_request": join_request.to_dict()},
        HTTPStatus.CREATED,
    )


@offices_bp.route("/visa-requests/<int:request_id>/join-requests", methods=["GET"])
def list_join_requests(request_id: int):
    actor = authenticate(request)
    items = capacity.list_join_requests(actor, request_id)
    return success(
        "Join requests retrieved successfully.",
        {"join_requests": [item.to_dict() for item in items]},
    )


@offices_bp.route(
    "/visa-requests/<int:request_id>/join-requests/<int:office_id>/approve",
    methods=["POST"],
)
def approve_join_request(request_id: int, office_id: int):
    """Approving an office's join request assigns the visa request to it."""
    actor = authenticate(request)
    visa_request = visa_requests.approve_join_request(actor, request_id, office_id)
    return success(
        "Join request approved and office assigned.",
        {"visa_request": visa_request.to_dict()},
    )
