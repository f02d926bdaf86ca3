"""Per-request chat threads, read receipts, and notification fan-out."""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from models import db
from models.chat import Chat, ChatMessage, MessageReadStatus
from models.enums import (
    ACTOR_MESSAGE_TYPES,
    MessageType,
    NotificationType,
    SenderType,
    UserRole,
    VisaStatus,
)
from models.notification import Notification
from models.user import User
from models.visa_request import VisaRequest
from utils.errors import InvalidState, ValidationError
from utils.timeutils import utcnow

from . import files
from .access import ensure_can_access, get_visa_request, require_role
from .transactions import atomic

MESSAGE_NOTIFICATION_TITLE = "New message"
SYSTEM_NOTIFICATION_TITLE = "Visa Application Update"


def ensure_chat(visa_request: VisaRequest) -> Chat:
    """Return the request's chat, creating it if it does not exist yet."""

    chat = Chat.query.filter_by(visa_request_id=visa_request.id).first()
    if chat is None:
        chat = Chat(
            visa_request_id=visa_request.id,
            applicant_id=visa_request.applicant_id,
            office_id=visa_request.office_id,
            admin_id=visa_request.admin_id,
        )
        db.session.add(chat)
    return chat


def sync_chat_parties(visa_request: VisaRequest) -> Chat:
    """Copy the request's current office and admin onto its chat."""

    chat = ensure_chat(visa_request)
    chat.office_id = visa_request.office_id
    chat.admin_id = visa_request.admin_id
    chat.updated_at = utcnow()
    return chat


def notify_participants(
    visa_request: VisaRequest,
    title: str,
    content: str,
    notification_type: NotificationType,
    *,
    exclude_user_id: int | None,
) -> list[Notification]:
    """Create one notification per participant other than ``exclude_user_id``."""

    notifications = []
    for user_id in visa_request.participant_ids():
        if user_id == exclude_user_id:
            continue
        notification = Notification(
            user_id=user_id,
            title=title,
            content=content,
            type=notification_type,
            reference_id=visa_request.id,
        )
        db.session.add(notification)
        notifications.append(notification)
    return notifications


def _append_message(
    visa_request: VisaRequest,
    *,
    sender: User | None,
    content: str,
    message_type: MessageType,
    file_url: str | None = None,
    metadata: dict | None = None,
) -> ChatMessage:
    message = ChatMessage(
        visa_request_id=visa_request.id,
        sender_id=sender.id if sender is not None else None,
        sender_type=SenderType(sender.role.value) if sender is not None else SenderType.SYSTEM,
        content=content,
        message_type=message_type,
        file_url=file_url,
        message_metadata=metadata,
        is_read=False,
        timestamp=utcnow(),
    )
    db.session.add(message)
    ensure_chat(visa_request).updated_at = message.timestamp
    return message


def post_event(
    visa_request: VisaRequest,
    content: str,
    *,
    actor: User | None,
    message_type: MessageType = MessageType.SYSTEM,
    file_url: str | None = None,
    metadata: dict | None = None,
) -> ChatMessage:
    """Append a machine-generated message for a lifecycle event.

    System messages are attributed to the ``system`` sender; payment messages
    are attributed to the acting user. Every participant except the actor is
    notified. Must be called inside an open unit of work.
    """

    sender = actor if message_type == MessageType.PAYMENT else None
    message = _append_message(
        visa_request,
        sender=sender,
        content=content,
        message_type=message_type,
        file_url=file_url,
        metadata=metadata,
    )
    notify_participants(
        visa_request,
        SYSTEM_NOTIFICATION_TITLE,
        content,
        NotificationType.SYSTEM,
        exclude_user_id=actor.id if actor is not None else None,
    )
    return message


def list_messages(actor: User, request_id: int) -> list[ChatMessage]:
    """Return the thread in timestamp order, ties broken by insertion order."""

    visa_request = get_visa_request(request_id)
    ensure_can_access(visa_request, actor)
    return (
        ChatMessage.query.filter_by(visa_request_id=visa_request.id)
        .order_by(ChatMessage.timestamp.asc(), ChatMessage.id.asc())
        .all()
    )


def send_message(
    actor: User,
    request_id: int,
    content: str,
    message_type: MessageType,
    file_url: str | None = None,
    metadata: dict | None = None,
) -> ChatMessage:
    """Post an actor's message to the thread and notify the other participants."""

    if message_type not in ACTOR_MESSAGE_TYPES:
        raise ValidationError("message_type must be one of: text, image, document.")
    if not content or not content.strip():
        raise ValidationError("content is required.")

    with atomic("send message"):
        visa_request = get_visa_request(request_id, lock=True)
        ensure_can_access(visa_request, actor)
        if VisaStatus(visa_request.status).is_terminal:
            raise InvalidState(
                "Cannot send messages in a completed or rejected visa request."
            )

        files.ensure_can_attach(actor, file_url)

        message = _append_message(
            visa_request,
            sender=actor,
            content=content,
            message_type=message_type,
            file_url=file_url,
            metadata=metadata,
        )
        notify_participants(
            visa_request,
            MESSAGE_NOTIFICATION_TITLE,
            f"New message in visa request #{visa_request.id}",
            NotificationType.MESSAGE,
            exclude_user_id=actor.id,
        )

    current_app.logger.info(
        "Message %s posted to visa request %s by user %s", message.id, request_id, actor.id
    )
    return message


def send_system_message(actor: User, request_id: int, content: str) -> ChatMessage:
    """Post a ``system`` message on behalf of an admin or the assigned office."""

    require_role(
        actor,
        UserRole.ADMIN,
        UserRole.OFFICE,
        message="Only admins and offices can send system notifications.",
    )
    if not content or not content.strip():
        raise ValidationError("content is required.")

    with atomic("send system notification"):
        visa_request = get_visa_request(request_id, lock=True)
        ensure_can_access(visa_request, actor)
        if VisaStatus(visa_request.status).is_terminal:
            raise InvalidState(
                "Cannot send messages in a completed or rejected visa request."
            )
        message = post_event(visa_request, content, actor=actor)

    return message


def mark_read(actor: User, request_id: int, message_ids: list[int] | None = None) -> dict:
    """Mark messages not sent by ``actor`` as read and record per-reader receipts.

    Without ``message_ids`` the whole thread is considered. Repeated calls are
    no-ops: flags already set stay set and no duplicate receipts are inserted.
    """

    with atomic("mark messages as read"):
        visa_request = get_visa_request(request_id)
        ensure_can_access(visa_request, actor)

        query = ChatMessage.query.filter(
            ChatMessage.visa_request_id == visa_request.id,
            or_(ChatMessage.sender_id.is_(None), ChatMessage.sender_id != actor.id),
        )
        if message_ids is not None:
            query = query.filter(ChatMessage.id.in_(message_ids))
        messages = query.order_by(ChatMessage.id.asc()).all()

        candidate_ids = [message.id for message in messages]
        already_read = set()
        if candidate_ids:
            already_read = {
                row.message_id
                for row in MessageReadStatus.query.filter(
                    MessageReadStatus.user_id == actor.id,
                    MessageReadStatus.message_id.in_(candidate_ids),
                )
            }

        flagged = 0
        receipts = 0
        now = utcnow()
        for message in messages:
            if not message.is_read:
                message.is_read = True
                flagged += 1
            if message.id not in already_read:
                db.session.add(
                    MessageReadStatus(message_id=message.id, user_id=actor.id, read_at=now)
                )
                receipts += 1

    return {"marked": flagged, "receipts_created": receipts}


def list_notifications(actor: User, unread_only: bool = False) -> list[Notification]:
    query = Notification.query.filter_by(user_id=actor.id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
