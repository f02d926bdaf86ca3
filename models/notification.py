"""Notification model definition."""

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import NotificationType, enum_value, enum_values


class Notification(db.Model):
    """A notification generated for a user by a chat or lifecycle event."""

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    type = db.Column(
        db.Enum(NotificationType, name="notification_type", values_callable=enum_values),
        nullable=False,
    )
    reference_id = db.Column(
        db.Integer, db.ForeignKey("visa_requests.id"), nullable=True, index=True
    )
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "content": self.content,
            "type": enum_value(self.type),
            "reference_id": self.reference_id,
            "is_read": bool(self.is_read),
            "created_at": isoformat(self.created_at),
        }
