"""Chat thread, message, and read-receipt models."""

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import MessageType, SenderType, enum_value, enum_values

SYSTEM_SENDER_ID = "system"


class Chat(db.Model):
    """The conversation attached to one visa request and its current parties."""

    __tablename__ = "chats"

    id = db.Column(db.Integer, primary_key=True)
    visa_request_id = db.Column(
        db.Integer, db.ForeignKey("visa_requests.id"), nullable=False, unique=True
    )
    applicant_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    office_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    visa_request = db.relationship("VisaRequest", back_populates="chat")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "visa_request_id": self.visa_request_id,
            "applicant_id": self.applicant_id,
            "office_id": self.office_id,
            "admin_id": self.admin_id,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class ChatMessage(db.Model):
    """A single message in a visa request thread."""

    __tablename__ = "chat_messages"

    # The autoincrement id is the insertion sequence used to order messages
    # that share a timestamp.
    id = db.Column(db.Integer, primary_key=True)
    visa_request_id = db.Column(
        db.Integer, db.ForeignKey("visa_requests.id"), nullable=False, index=True
    )
    # NULL for machine-generated messages.
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    sender_type = db.Column(
        db.Enum(SenderType, name="sender_type", values_callable=enum_values),
        nullable=False,
    )
    content = db.Column(db.Text, nullable=False)
    message_type = db.Column(
        db.Enum(MessageType, name="message_type", values_callable=enum_values),
        nullable=False,
        default=MessageType.TEXT,
    )
    file_url = db.Column(db.String(512), nullable=True)
    message_metadata = db.Column("metadata", db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    read_statuses = db.relationship(
        "MessageReadStatus",
        back_populates="message",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def is_system(self) -> bool:
        return self.sender_type == SenderType.SYSTEM

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "visa_request_id": self.visa_request_id,
            "sender_id": SYSTEM_SENDER_ID if self.sender_id is None else self.sender_id,
            "sender_type": enum_value(self.sender_type),
            "content": self.content,
            "message_type": enum_value(self.message_type),
            "file_url": self.file_url,
            "metadata": self.message_metadata,
            "is_read": bool(self.is_read),
            "timestamp": isoformat(self.timestamp),
        }


class MessageReadStatus(db.Model):
    """Per-reader receipt for a chat message."""

    __tablename__ = "message_read_status"
    __table_args__ = (
        db.UniqueConstraint("message_id", "user_id", name="uq_message_read_status_reader"),
    )

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(
        db.Integer, db.ForeignKey("chat_messages.id"), nullable=False, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    read_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    message = db.relationship("ChatMessage", back_populates="read_statuses")

    def to_dict(self) -> dict:
        return {
            "message_id": self.message_id,
            "user_id": self.user_id,
            "read_at": isoformat(self.read_at),
        }
