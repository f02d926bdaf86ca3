"""Identity resolution: map an opaque credential to a platform user."""

from __future__ import annotations

from abc import ABC, abstractmethod

from flask import Request, current_app
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models import db
from models.user import User
from utils.errors import NotFound, Unauthenticated

EXTENSION_KEY = "authenticator"


class Authenticator(ABC):
    """Interface for credential schemes."""

    @abstractmethod
    def identify(self, credential: str) -> int:
        """Return the user id the credential belongs to or raise ``Unauthenticated``."""


class JWTAuthenticator(Authenticator):
    """Resolve bearer tokens issued by Flask-JWT-Extended."""

    def identify(self, credential: str) -> int:
        try:
            claims = decode_token(credential)
        except (JWTExtendedException, PyJWTError) as exc:
            raise Unauthenticated("Invalid or expired token.") from exc
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise Unauthenticated("Token does not identify a user.") from exc


def get_authenticator() -> Authenticator:
    return current_app.extensions[EXTENSION_KEY]


def bearer_credential(req: Request) -> str:
    header = req.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Missing bearer token.")
    return token.strip()


def resolve_user(user_id: int) -> User:
    """Load the user for a resolved identity; a dangling identity is a 404."""

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def authenticate(req: Request) -> User:
    """Identify the actor behind an incoming request."""

    user_id = get_authenticator().identify(bearer_credential(req))
    return resolve_user(user_id)
