"""Errors raised while resolving identities."""

from __future__ import annotations


class IdentityError(RuntimeError):
    """Base class for identity resolution failures."""


class InvalidRequestError(IdentityError):
    """Raised when a request carries no usable identifier."""


class StorageError(IdentityError):
    """Raised when the contact store fails; the whole call may be retried."""


class NotFoundInconsistencyError(IdentityError):
    """Raised when a secondary points at a primary that does not exist."""

    def __init__(self, message: str, *, contact_id: int | None = None) -> None:
        super().__init__(message)
        self.contact_id = contact_id


class ContactNotFoundError(IdentityError):
    """Raised when a looked-up contact id does not exist."""
