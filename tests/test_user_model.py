"""Tests for the User model helpers."""

import pytest

from models import db
from models.enums import UserRole
from models.user import User


def test_password_and_role_helpers(app):
    with app.app_context():
        user = User(email="helper@example.com", role=UserRole.APPLICANT)
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()

        assert user.is_active is True
        assert user.check_password("password123")
        assert not user.check_password("wrong")
        assert user.is_applicant
        assert not user.is_office
        assert user.has_capacity() is False


def test_office_capacity_helper(app):
    with app.app_context():
        office = User(email="office@example.com", role=UserRole.OFFICE, visa_limit=1)
        office.set_password("password123")
        db.session.add(office)
        db.session.commit()

        assert office.active_visa_requests == 0
        assert office.has_capacity() is True

        office.active_visa_requests = 1
        db.session.commit()
        assert office.has_capacity() is False


def test_role_is_immutable(app):
    with app.app_context():
        user = User(email="fixed@example.com", role=UserRole.APPLICANT)
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()

        with pytest.raises(ValueError):
            user.role = UserRole.ADMIN


def test_unknown_role_is_rejected(app):
    with app.app_context():
        with pytest.raises(ValueError):
            User(email="x@example.com", role="superuser")
