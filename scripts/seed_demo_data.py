"""Seed demo offices, an applicant, and an in-progress visa request."""

from app import create_app
from models import db
from models.enums import DocumentType, UserRole
from models.user import User
from models.visa_request import VisaRequest
from services import documents, visa_requests

OFFICES = [
    {
        "email": "cairo.office@example.com",
        "name": "Cairo Visa Services",
        "address": "12 Tahrir Square",
        "governorate": "Cairo",
        "visa_limit": 5,
    },
    {
        "email": "giza.office@example.com",
        "name": "Giza Visa Center",
        "address": "4 Pyramids Road",
        "governorate": "Giza",
        "visa_limit": 3,
    },
]


def get_or_create_user(email: str, role: UserRole, password: str, **fields) -> User:
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, role=role, **fields)
        db.session.add(user)
    elif user.role != role:
        raise SystemExit(f"{email} already belongs to a {user.role.value} account.")
    user.set_password(password)
    return user


def main() -> None:
    app = create_app()
    with app.app_context():
        for office in OFFICES:
            get_or_create_user(office.pop("email"), UserRole.OFFICE, "OfficePass123", **office)
        applicant = get_or_create_user(
            "applicant@example.com",
            UserRole.APPLICANT,
            "ApplicantPass123",
            name="Demo Applicant",
            phone_number="+20 100 000 0001",
        )
        db.session.commit()

        active = VisaRequest.query.filter_by(active_applicant_id=applicant.id).first()
        if active is None:
            active = visa_requests.create_request(applicant, "A00000001")
            for document_type in (DocumentType.PASSPORT, DocumentType.PHOTO):
                documents.upload_document(
                    applicant,
                    active.id,
                    document_type,
                    f"/uploads/demo/{document_type.value}.pdf",
                    f"{document_type.value}.pdf",
                )
        print(f"Demo data ready: visa request {active.id} is {active.status.value}")


if __name__ == "__main__":
    main()
