"""Seed an administrator user."""

import os

from app import create_app
from models import db
from models.enums import UserRole
from models.user import User

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123")


def main() -> None:
    app = create_app()
    with app.app_context():
        admin = User.query.filter_by(email=ADMIN_EMAIL).first()
        if admin is None:
            admin = User(email=ADMIN_EMAIL, role=UserRole.ADMIN, name="Administrator")
            admin.set_password(ADMIN_PASSWORD)
            db.session.add(admin)
            action = "created"
        elif admin.role != UserRole.ADMIN:
            raise SystemExit(f"{ADMIN_EMAIL} already belongs to a {admin.role.value} account.")
        else:
            admin.set_password(ADMIN_PASSWORD)
            action = "updated"
        db.session.commit()
        print(f"Admin user {action}: {ADMIN_EMAIL}")


if __name__ == "__main__":
    main()
