"""User model definition."""

from sqlalchemy.orm import validates
from werkzeug.security import check_password_hash, generate_password_hash

from utils.timeutils import isoformat, utcnow

from . import db
from .enums import UserRole, enum_value, enum_values


class User(db.Model):
    """Represents a platform user: an applicant, an admin, or a visa office."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120), nullable=False, default="")
    phone_number = db.Column(db.String(32), nullable=True)
    role = db.Column(
        db.Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.APPLICANT,
    )
    profile_image_url = db.Column(db.String(512), nullable=True)
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.text("true"),
    )

    # Office attributes
    address = db.Column(db.String(255), nullable=True)
    governorate = db.Column(db.String(120), nullable=True, index=True)
    logo_url = db.Column(db.String(512), nullable=True)
    visa_limit = db.Column(db.Integer, nullable=True)
    active_visa_requests = db.Column(
        db.Integer, nullable=False, default=0, server_default=db.text("0")
    )
    last_active_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint("active_visa_requests >= 0", name="ck_users_active_non_negative"),
    )

    @validates("role")
    def _validate_role(self, key, value):
        role = UserRole(value)
        if self.role is not None and UserRole(self.role) != role:
            raise ValueError("A user's role cannot be changed after creation.")
        return role

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    @property
    def is_office(self) -> bool:
        return self.role == UserRole.OFFICE

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_applicant(self) -> bool:
        return self.role == UserRole.APPLICANT

    def has_capacity(self) -> bool:
        """Return True if this office can take another active visa request."""

        if not self.is_office or self.visa_limit is None:
            return False
        return (self.active_visa_requests or 0) < self.visa_limit

    def to_dict(self, include_office: bool = True) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone_number": self.phone_number,
            "role": enum_value(self.role),
            "profile_image_url": self.profile_image_url,
            "created_at": isoformat(self.created_at),
        }
        if include_office and self.is_office:
            data["office_details"] = {
                "address": self.address,
                "governorate": self.governorate,
                "logo_url": self.logo_url,
                "visa_limit": self.visa_limit,
                "active_visa_requests": self.active_visa_requests or 0,
            }
        return data

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email} role={enum_value(self.role)}>"
