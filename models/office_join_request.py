"""Office join request model."""

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import JoinRequestStatus, enum_value, enum_values


class OfficeJoinRequest(db.Model):
    """An office's request to take over a visa request's chat."""

    __tablename__ = "office_join_requests"
    __table_args__ = (
        db.UniqueConstraint("visa_request_id", "office_id", name="uq_office_join_request"),
    )

    id = db.Column(db.Integer, primary_key=True)
    visa_request_id = db.Column(
        db.Integer, db.ForeignKey("visa_requests.id"), nullable=False, index=True
    )
    office_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(
        db.Enum(JoinRequestStatus, name="join_request_status", values_callable=enum_values),
        nullable=False,
        default=JoinRequestStatus.PENDING,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    office = db.relationship("User", foreign_keys=[office_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "visa_request_id": self.visa_request_id,
            "office_id": self.office_id,
            "status": enum_value(self.status),
            "created_at": isoformat(self.created_at),
            "office": self.office.to_dict() if self.office is not None else None,
        }
