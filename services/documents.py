"""Document intake and the automatic document-driven status advance."""

from __future__ import annotations

from flask import current_app

from models import db
from models.document import Document
from models.enums import DocumentType, UserRole, VisaStatus
from models.user import User
from models.visa_request import VisaRequest
from utils.errors import InvalidState, ValidationError

from . import files
from .access import ensure_can_access, get_visa_request, require_role
from .transactions import atomic
from .visa_requests import apply_status

UPLOADABLE_STATUSES = frozenset({VisaStatus.PENDING, VisaStatus.DOCUMENTS_PENDING})
REQUIRED_DOCUMENT_COUNT = 3


def _document_threshold_met(visa_request: VisaRequest) -> bool:
    total = Document.query.filter_by(visa_request_id=visa_request.id).count()
    return total >= REQUIRED_DOCUMENT_COUNT


def advance_after_upload(visa_request: VisaRequest) -> list[VisaStatus]:
    """Re-derive the document set and apply any transitions it now allows.

    Each transition only fires from its own source state, so repeating the
    check never re-applies a transition that already happened.
    """

    applied = []
    if visa_request.status == VisaStatus.PENDING:
        apply_status(visa_request, VisaStatus.DOCUMENTS_PENDING)
        applied.append(VisaStatus.DOCUMENTS_PENDING)
    if visa_request.status == VisaStatus.DOCUMENTS_PENDING and _document_threshold_met(
        visa_request
    ):
        apply_status(visa_request, VisaStatus.PAYMENT_PENDING)
        applied.append(VisaStatus.PAYMENT_PENDING)
    return applied


def upload_document(
    actor: User,
    request_id: int,
    document_type: DocumentType,
    document_url: str,
    document_name: str | None = None,
) -> Document:
    """Attach a stored document to the actor's own request."""

    require_role(actor, UserRole.APPLICANT, message="Only applicants can upload documents.")
    if not document_url:
        raise ValidationError("A document file is required.")
    files.ensure_can_attach(actor, document_url)

    with atomic("upload document"):
        visa_request = get_visa_request(request_id, lock=True)
        ensure_can_access(visa_request, actor)
        if visa_request.status not in UPLOADABLE_STATUSES:
            raise InvalidState("Cannot upload documents in current status.")

        document = Document(
            visa_request_id=visa_request.id,
            document_type=document_type,
            document_url=document_url,
            document_name=document_name,
        )
        db.session.add(document)
        db.session.flush()
        applied = advance_after_upload(visa_request)

    for status in applied:
        current_app.logger.info(
            "Visa request %s advanced to %s after document upload", request_id, status.value
        )
    return document


def list_documents(actor: User, request_id: int) -> list[Document]:
    visa_request = get_visa_request(request_id)
    ensure_can_access(visa_request, actor)
    return visa_request.documents.all()
