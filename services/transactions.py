"""Atomic units of work over the shared SQLAlchemy session."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.exceptions import HTTPException

from models import db
from utils.errors import Conflict, TransactionFailure


@contextmanager
def atomic(description: str, *, conflict_message: str | None = None) -> Iterator[Session]:
    """Run a block as one transaction: commit on success, roll back on any error.

    Domain errors raised inside the block propagate unchanged after the rollback.
    Database errors are surfaced as :class:`TransactionFailure`, except unique
    constraint violations, which become :class:`Conflict` when
    ``conflict_message`` is given.
    """

    session = db.session
    try:
        yield session
        session.commit()
    except HTTPException as exc:
        session.rollback()
        current_app.logger.info("Rolled back %s: %s", description, exc.description)
        raise
    except IntegrityError as exc:
        session.rollback()
        if conflict_message is not None:
            current_app.logger.warning("Conflict during %s: %s", description, exc.orig)
            raise Conflict(conflict_message) from exc
        current_app.logger.exception("Integrity failure during %s", description)
        raise TransactionFailure(f"Failed to {description}: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.exception("Database failure during %s", description)
        raise TransactionFailure(f"Failed to {description}: {exc}") from exc
    except Exception:
        session.rollback()
        raise
