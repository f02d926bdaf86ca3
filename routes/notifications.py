"""Notification listing for the calling user."""

from __future__ import annotations

from flask import Blueprint, request

from services import chat
from services.identity import authenticate
from utils.responses import success

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.route("", methods=["GET"])
def list_notifications():
    actor = authenticate(request)
    unread_only = (request.args.get("unread") or "").strip().lower() in {"1", "true", "yes"}
    notifications = chat.list_notifications(actor, unread_only=unread_only)
    return success(
        "Notifications retrieved successfully.",
        {"notifications": [item.to_dict() for item in notifications]},
    )
