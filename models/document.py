"""Document model definition."""

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import DocumentType, enum_value, enum_values


class Document(db.Model):
    """An uploaded supporting document attached to a visa request."""

    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    visa_request_id = db.Column(
        db.Integer,
        db.ForeignKey("visa_requests.id"),
        nullable=False,
        index=True,
    )
    document_type = db.Column(
        db.Enum(DocumentType, name="document_type", values_callable=enum_values),
        nullable=False,
    )
    document_url = db.Column(db.String(512), nullable=False)
    document_name = db.Column(db.String(255), nullable=True)
    uploaded_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
    )

    visa_request = db.relationship("VisaRequest", back_populates="documents")

    def __repr__(self) -> str:
        return (
            f"<Document id={self.id} visa_request_id={self.visa_request_id} "
            f"type={enum_value(self.document_type)}>"
        )

    def to_dict(self) -> dict:
        """Serialize the document into a dictionary."""

        return {
            "id": self.id,
            "visa_request_id": self.visa_request_id,
            "document_type": enum_value(self.document_type),
            "document_url": self.document_url,
            "document_name": self.document_name,
            "uploaded_at": isoformat(self.uploaded_at),
        }
