"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .visa_request import VisaRequest  # noqa: E402,F401
from .document import Document  # noqa: E402,F401
from .payment import Payment  # noqa: E402,F401
from .chat import Chat, ChatMessage, MessageReadStatus  # noqa: E402,F401
from .notification import Notification  # noqa: E402,F401
from .office_join_request import OfficeJoinRequest  # noqa: E402,F401

__all__ = [
    "db",
    "User",
    "VisaRequest",
    "Document",
    "Payment",
    "Chat",
    "ChatMessage",
    "MessageReadStatus",
    "Notification",
    "OfficeJoinRequest",
]
