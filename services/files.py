"""Who may read, attach, or delete a stored upload.

Stored paths carry their owner. Generic uploads live under
``users/<user_id>/<directory>``. Files uploaded against a request live under
``visa_requests/<request_id>`` or ``payments/<request_id>``. A file is also
owned by every request whose rows reference its URL.
"""

from __future__ import annotations

from models import db
from models.chat import ChatMessage
from models.document import Document
from models.enums import UserRole
from models.payment import Payment
from models.user import User
from models.visa_request import VisaRequest
from storage import FileStore
from utils.errors import Conflict, Forbidden, ValidationError

from .access import can_access

USER_DIRECTORY = "users"
REQUEST_DIRECTORIES = frozenset({"visa_requests", "payments"})


def user_directory(actor: User, directory: str) -> str:
    return f"{USER_DIRECTORY}/{actor.id}/{directory}"


def _segments(stored_path: str) -> list[str]:
    parts = stored_path.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise ValidationError("Invalid file URL.")
    return parts


def _owner_id(parts: list[str]) -> int | None:
    if len(parts) >= 3 and parts[0] == USER_DIRECTORY and parts[1].isdigit():
        return int(parts[1])
    return None


def _scoped_request_id(parts: list[str]) -> int | None:
    if len(parts) >= 3 and parts[0] in REQUEST_DIRECTORIES and parts[1].isdigit():
        return int(parts[1])
    return None


def referencing_request_ids(url: str) -> set[int]:
    """Return the ids of requests whose documents, payments or messages point at ``url``."""

    references = (
        (Document.visa_request_id, Document.document_url),
        (Payment.visa_request_id, Payment.screenshot_url),
        (ChatMessage.visa_request_id, ChatMessage.file_url),
        (VisaRequest.id, VisaRequest.payment_screenshot_url),
        (VisaRequest.id, VisaRequest.visa_document_url),
    )
    request_ids: set[int] = set()
    for key, column in references:
        request_ids.update(value for (value,) in db.session.query(key).filter(column == url))
    return request_ids


def _can_read(actor: User, url: str, parts: list[str]) -> bool:
    if actor.role == UserRole.ADMIN or _owner_id(parts) == actor.id:
        return True
    request_ids = referencing_request_ids(url)
    scoped = _scoped_request_id(parts)
    if scoped is not None:
        request_ids.add(scoped)
    if not request_ids:
        return False
    visa_requests = VisaRequest.query.filter(VisaRequest.id.in_(request_ids))
    return any(can_access(visa_request, actor) for visa_request in visa_requests)


def ensure_can_read(actor: User, store: FileStore, stored_path: str) -> None:
    parts = _segments(stored_path)
    if not _can_read(actor, store.url_for(stored_path), parts):
        raise Forbidden("You do not have access to this file.")


def ensure_can_delete(actor: User, store: FileStore, url: str) -> None:
    """Owners and admins may delete a file that no request references."""

    stored_path = store.path_for(url)
    if stored_path is None:
        raise ValidationError("Invalid file URL.")
    parts = _segments(stored_path)
    if actor.role != UserRole.ADMIN and _owner_id(parts) != actor.id:
        raise Forbidden("You do not have access to this file.")
    if referencing_request_ids(url):
        raise Conflict("File is attached to a visa request and cannot be deleted.")


def ensure_can_attach(actor: User, url: str | None) -> None:
    """Refuse to attach a stored file the actor could not read themselves.

    URLs outside the file store, and store URLs with nothing behind them, are
    accepted as opaque references.
    """

    if not url:
        return
    store = FileStore.from_app()
    stored_path = store.path_for(url)
    if stored_path is None:
        return
    parts = _segments(stored_path)
    if store.backend.exists(stored_path) and not _can_read(actor, url, parts):
        raise Forbidden("You cannot attach a file you do not have access to.")
