"""Closed enumerations shared by the models and the services."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    APPLICANT = "applicant"
    ADMIN = "admin"
    OFFICE = "office"


class VisaStatus(str, enum.Enum):
    """Lifecycle states of a visa request."""

    PENDING = "pending"
    DOCUMENTS_PENDING = "documentsPending"
    PAYMENT_PENDING = "paymentPending"
    PAYMENT_VERIFIED = "paymentVerified"
    ASSIGNED = "assigned"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_office_bearing(self) -> bool:
        return self in OFFICE_BEARING_STATUSES


TERMINAL_STATUSES = frozenset({VisaStatus.COMPLETED, VisaStatus.REJECTED})
OFFICE_BEARING_STATUSES = frozenset(
    {VisaStatus.ASSIGNED, VisaStatus.PROCESSING, VisaStatus.COMPLETED}
)


class DocumentType(str, enum.Enum):
    PASSPORT = "passport"
    PHOTO = "photo"
    UNIVERSITY_CERTIFICATE = "university_certificate"
    OTHER = "other"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class PaymentMethod(str, enum.Enum):
    SCREENSHOT = "screenshot"
    INSTAPAY = "instapay"


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"
    PAYMENT = "payment"
    SYSTEM = "system"


# Types an actor may post through the public send endpoint.
ACTOR_MESSAGE_TYPES = frozenset({MessageType.TEXT, MessageType.IMAGE, MessageType.DOCUMENT})


class SenderType(str, enum.Enum):
    APPLICANT = "applicant"
    ADMIN = "admin"
    OFFICE = "office"
    SYSTEM = "system"


class NotificationType(str, enum.Enum):
    MESSAGE = "message"
    SYSTEM = "system"


class JoinRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def enum_values(enum_cls) -> list[str]:
    """Store enum values (not member names) in database enum columns."""

    return [member.value for member in enum_cls]


def enum_value(value):
    """Return the plain string for an enum member, passing other values through."""

    return getattr(value, "value", value)
