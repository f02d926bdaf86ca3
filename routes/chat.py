"""Chat endpoints for a visa request's message thread."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, request

from models.enums import ACTOR_MESSAGE_TYPES, MessageType
from services import chat
from services.identity import authenticate
from utils.errors import ValidationError
from utils.request_validation import (
    optional_string,
    parse_enum,
    parse_int_list,
    parse_json_request,
    required_string,
)
from utils.responses import success

chat_bp = Blueprint("chat", __name__)


@chat_bp.route("/<int:request_id>/messages", methods=["GET"])
def list_messages(request_id: int):
    actor = authenticate(request)
    messages = chat.list_messages(actor, request_id)
    return success(
        "Messages retrieved successfully.",
        {"messages": [message.to_dict() for message in messages]},
    )


@chat_bp.route("/<int:request_id>/messages", methods=["POST"])
def send_message(request_id: int):
    """Post a text, image, or document message to the thread."""
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("content",))
    message_type = parse_enum(
        payload.get("message_type") or MessageType.TEXT.value,
        MessageType,
        "message_type",
        allowed=ACTOR_MESSAGE_TYPES,
    )
    metadata = payload.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object.")

    message = chat.send_message(
        actor,
        request_id,
        required_string(payload, "content"),
        message_type,
        file_url=optional_string(payload, "file_url", max_length=512),
        metadata=metadata,
    )
    return success(
        "Message sent successfully.", {"message": message.to_dict()}, HTTPStatus.CREATED
    )


@chat_bp.route("/<int:request_id>/system", methods=["POST"])
def send_system_message(request_id: int):
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("content",))
    message = chat.send_system_message(actor, request_id, required_string(payload, "content"))
    return success(
        "System notification sent successfully.",
        {"message": message.to_dict()},
        HTTPStatus.CREATED,
    )


@chat_bp.route("/<int:request_id>/read", methods=["PUT"])
def mark_messages_read(request_id: int):
    """Mark the given messages, or the whole thread, as read by the caller."""
    actor = authenticate(request)
    message_ids = None
    if request.content_length:
        payload = parse_json_request(request, allow_empty=True)
        message_ids = parse_int_list(payload.get("message_ids"), "message_ids")
    result = chat.mark_read(actor, request_id, message_ids)
    return success("Messages marked as read.", result)
