"""Payment model definition."""

from decimal import Decimal

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import PaymentMethod, PaymentStatus, enum_value, enum_values


class Payment(db.Model):
    """A payment submission for a visa request and its verification outcome."""

    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    visa_request_id = db.Column(
        db.Integer, db.ForeignKey("visa_requests.id"), nullable=False, index=True
    )
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(
        db.Enum(PaymentMethod, name="payment_method", values_callable=enum_values),
        nullable=False,
    )
    status = db.Column(
        db.Enum(PaymentStatus, name="payment_status", values_callable=enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    reference_number = db.Column(db.String(128), nullable=True)
    screenshot_url = db.Column(db.String(512), nullable=True)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    visa_request = db.relationship("VisaRequest", back_populates="payments")

    def to_dict(self) -> dict:
        amount = float(self.amount) if isinstance(self.amount, Decimal) else self.amount
        return {
            "id": self.id,
            "visa_request_id": self.visa_request_id,
            "amount": amount,
            "payment_method": enum_value(self.payment_method),
            "status": enum_value(self.status),
            "reference_number": self.reference_number,
            "screenshot_url": self.screenshot_url,
            "verified_by": self.verified_by,
            "verified_at": isoformat(self.verified_at),
            "note": self.note,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
