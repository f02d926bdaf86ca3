"""VisaRequest model definition."""

from decimal import Decimal

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import VisaStatus, enum_value, enum_values


class VisaRequest(db.Model):
    """The central workflow entity tracked through the visa lifecycle."""

    __tablename__ = "visa_requests"

    id = db.Column(db.Integer, primary_key=True)
    applicant_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    # Mirrors applicant_id while the request is non-terminal and is cleared
    # when it terminates, so the unique constraint allows one active request
    # per applicant.
    active_applicant_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=True, unique=True
    )
    office_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status = db.Column(
        db.Enum(VisaStatus, name="visa_status", values_callable=enum_values),
        nullable=False,
        default=VisaStatus.PENDING,
        index=True,
    )
    passport_number = db.Column(db.String(64), nullable=False)

    payment_amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_verified = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.false()
    )
    payment_verified_at = db.Column(db.DateTime, nullable=True)
    payment_screenshot_url = db.Column(db.String(512), nullable=True)
    payment_reference = db.Column(db.String(128), nullable=True)

    visa_document_url = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    applicant = db.relationship("User", foreign_keys=[applicant_id])
    office = db.relationship("User", foreign_keys=[office_id])
    admin = db.relationship("User", foreign_keys=[admin_id])
    documents = db.relationship(
        "Document",
        back_populates="visa_request",
        lazy="dynamic",
        order_by="Document.id",
    )
    payments = db.relationship(
        "Payment",
        back_populates="visa_request",
        lazy="dynamic",
        order_by="Payment.id.desc()",
    )
    chat = db.relationship("Chat", back_populates="visa_request", uselist=False)

    @property
    def is_terminal(self) -> bool:
        return VisaStatus(self.status).is_terminal

    def participant_ids(self) -> list[int]:
        """Return the ids of every user currently associated with the request."""

        ids = [self.applicant_id]
        for user_id in (self.admin_id, self.office_id):
            if user_id is not None and user_id not in ids:
                ids.append(user_id)
        return ids

    def to_dict(self) -> dict:
        amount = self.payment_amount
        if isinstance(amount, Decimal):
            amount = float(amount)
        return {
            "id": self.id,
            "applicant_id": self.applicant_id,
            "office_id": self.office_id,
            "admin_id": self.admin_id,
            "status": enum_value(self.status),
            "passport_number": self.passport_number,
            "payment_amount": amount,
            "payment_verified": bool(self.payment_verified),
            "is_paid": bool(self.payment_verified),
            "payment_verified_at": isoformat(self.payment_verified_at),
            "payment_screenshot_url": self.payment_screenshot_url,
            "payment_reference": self.payment_reference,
            "visa_document_url": self.visa_document_url,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<VisaRequest id={self.id} status={enum_value(self.status)}>"
