"""Canonical forms for the identifiers a request may carry."""

from __future__ import annotations

import re

from contactlink.domain.errors import InvalidRequestError

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_email(value: str | None) -> str | None:
    """Trim and lowercase an email address; blank values become ``None``."""

    if value is None:
        return None
    normalized = value.strip().lower()
    if not normalized:
        return None
    local, sep, domain = normalized.partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise InvalidRequestError(f"Invalid email format: {value!r}")
    return normalized


def normalize_phone_number(value: str | int | None) -> str | None:
    """Keep only the digits of a phone number; blank values become ``None``."""

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        raise InvalidRequestError(f"Invalid phone number format: {value!r}")
    return digits
