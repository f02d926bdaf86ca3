"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, TypeVar

from flask import Request

from utils.errors import ValidationError

E = TypeVar("E", bound=Enum)


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise ValidationError("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise ValidationError("Request JSON body is required.")

    if not isinstance(data, dict):
        raise ValidationError("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise ValidationError("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if data.get(key) in (None, "")]
        if missing:
            raise ValidationError(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data


def parse_enum(value: object, enum_cls: type[E], field: str, *, allowed: Iterable[E] | None = None) -> E:
    """Convert a raw value into a member of ``enum_cls`` or raise a 400 error."""

    choices = list(allowed) if allowed is not None else list(enum_cls)
    try:
        member = enum_cls(value)
    except ValueError:
        member = None
    if member is None or member not in choices:
        names = ", ".join(choice.value for choice in choices)
        raise ValidationError(f"{field} must be one of: {names}.")
    return member


def parse_int(value: object, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer.") from None


def parse_int_list(value: object, field: str) -> list[int] | None:
    """Parse an optional list of integer ids; ``None`` or empty means "not given"."""

    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list of integers.")
    if not value:
        return None
    return [parse_int(item, field) for item in value]


def optional_string(data: dict, key: str, *, max_length: int | None = None) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string.")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{key} must be at most {max_length} characters.")
    return value or None


def required_string(data: dict, key: str, *, max_length: int | None = None) -> str:
    value = optional_string(data, key, max_length=max_length)
    if value is None:
        raise ValidationError(f"{key} is required.")
    return value
