"""Error taxonomy for the visa workflow.

Every error is a :class:`werkzeug.exceptions.HTTPException` so the application
error handler can render it in the response envelope with the right status.
"""

from __future__ import annotations

from werkzeug.exceptions import (
    BadRequest,
    Conflict,
    Forbidden,
    InternalServerError,
    NotFound,
    Unauthorized,
)

__all__ = [
    "Conflict",
    "Forbidden",
    "InvalidState",
    "NotFound",
    "TransactionFailure",
    "Unauthenticated",
    "ValidationError",
    "error_kind",
]


class Unauthenticated(Unauthorized):
    """No credential was presented, or the credential is invalid."""

    kind = "Unauthenticated"


class InvalidState(BadRequest):
    """The action is not permitted from the request's current lifecycle state."""

    kind = "InvalidState"


class ValidationError(BadRequest):
    """A field is missing, malformed, or carries an unknown enum value."""

    kind = "ValidationError"


class TransactionFailure(InternalServerError):
    """A step of an atomic unit of work failed and everything was rolled back."""

    kind = "TransactionFailure"


_KIND_BY_CLASS = {
    Forbidden: "Forbidden",
    NotFound: "NotFound",
    Conflict: "Conflict",
}


def error_kind(error) -> str:
    kind = getattr(error, "kind", None)
    if kind:
        return kind
    for cls, name in _KIND_BY_CLASS.items():
        if isinstance(error, cls):
            return name
    return getattr(error, "name", "Error")
