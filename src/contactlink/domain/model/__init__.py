"""Public domain model surface."""

from __future__ import annotations

from contactlink.domain.model.contact import Contact
from contactlink.domain.model.enums import LinkPrecedence

__all__ = [
    "Contact",
    "LinkPrecedence",
]
