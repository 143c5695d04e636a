"""Contact records and their link semantics.

A contact is either the primary of its identity cluster (no ``linked_id``) or a
secondary pointing directly at that primary. Links are never chained.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from contactlink.domain.model.enums import LinkPrecedence

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Contact:
    """A single identifier record.

    ``id``, ``created_at`` and ``updated_at`` are assigned by the store.
    """

    id: int | None = None
    email: str | None = None
    phone_number: str | None = None
    linked_id: int | None = None
    link_precedence: LinkPrecedence = LinkPrecedence.PRIMARY

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == LinkPrecedence.PRIMARY

    @property
    def is_secondary(self) -> bool:
        return self.link_precedence == LinkPrecedence.SECONDARY

    @property
    def root_id(self) -> int | None:
        """Id of the primary this contact belongs to."""
        return self.id if self.is_primary else self.linked_id

    @property
    def sort_key(self) -> tuple[datetime, int]:
        if self.created_at is None or self.id is None:
            raise ValueError("Contact has not been persisted yet")
        return self.created_at, self.id

    def is_linked_to(self, primary: Contact) -> bool:
        return self.is_secondary and self.linked_id == primary.id

    def link_to(self, primary: Contact) -> bool:
        """Make this contact a secondary of ``primary``.

        Returns whether anything changed.
        """
        if primary.id is None:
            raise ValueError("Cannot link to a contact without an id")
        if primary.id == self.id:
            raise ValueError("A contact cannot be linked to itself")
        if self.is_linked_to(primary):
            return False
        self.link_precedence = LinkPrecedence.SECONDARY
        self.linked_id = primary.id
        return True

    def check_invariants(self) -> None:
        if self.is_primary and self.linked_id is not None:
            raise ValueError(f"Primary contact {self.id} must not carry a linked id")
        if self.is_secondary and self.linked_id is None:
            raise ValueError(f"Secondary contact {self.id} requires a linked id")
