"""Ports for persisting contacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from contactlink.domain.model import Contact, LinkPrecedence


@runtime_checkable
class ContactRepository(Protocol):
    """Persistence contract for contact records.

    Every list returned is ordered by ``created_at`` ascending, ties broken by ``id``.
    """

    def find_matching(
        self,
        email: str | None,
        phone_number: str | None,
    ) -> list[Contact]:
        """Contacts whose email equals ``email`` or whose phone equals ``phone_number``."""
        ...

    def find_by_cluster_primary(self, primary_id: int) -> list[Contact]:
        """The primary with ``primary_id`` and every contact linked to it."""
        ...

    def get(self, contact_id: int) -> Contact | None: ...

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        """Insert a contact, assigning its id and timestamps."""
        ...

    def save_all(self, contacts: Iterable[Contact]) -> None:
        """Persist link changes of already-created contacts."""
        ...
