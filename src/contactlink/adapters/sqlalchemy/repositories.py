"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from sqlalchemy import inspect, or_, select

from contactlink.adapters.sqlalchemy.mappings import contact_table
from contactlink.domain.model import Contact, LinkPrecedence

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlalchemy import Select
    from sqlalchemy.orm import Session


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyContactRepository:
    def __init__(self, session: Session, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.session = session
        self._clock = clock

    def find_matching(
        self,
        email: str | None,
        phone_number: str | None,
    ) -> list[Contact]:
        conditions = []
        if email:
            conditions.append(contact_table.c.email == email)
        if phone_number:
            conditions.append(contact_table.c.phone_number == phone_number)
        if not conditions:
            return []
        # row locks are a no-op on SQLite, which serializes whole transactions instead
        stmt = self._ordered(select(Contact).where(or_(*conditions))).with_for_update()
        return list(self.session.scalars(stmt))

    def find_by_cluster_primary(self, primary_id: int) -> list[Contact]:
        stmt = self._ordered(
            select(Contact).where(
                or_(contact_table.c.id == primary_id, contact_table.c.linked_id == primary_id)
            )
        )
        return list(self.session.scalars(stmt))

    def get(self, contact_id: int) -> Contact | None:
        return self.session.get(Contact, contact_id)

    def create(
        self,
        *,
        email: str | None,
        phone_number: str | None,
        link_precedence: LinkPrecedence,
        linked_id: int | None = None,
    ) -> Contact:
        now = self._clock()
        contact = Contact(
            email=email,
            phone_number=phone_number,
            link_precedence=link_precedence,
            linked_id=linked_id,
            created_at=now,
            updated_at=now,
        )
        contact.check_invariants()
        self.session.add(contact)
        self.session.flush()
        return contact

    def save_all(self, contacts: Iterable[Contact]) -> None:
        now = self._clock()
        batch = list(contacts)
        for contact in batch:
            if contact.id is None or inspect(contact).transient:
                raise ValueError("save_all only accepts contacts that were already created")
            contact.check_invariants()
            contact.updated_at = now
        self.session.add_all(batch)
        self.session.flush()

    @staticmethod
    def _ordered(stmt: Select[tuple[Contact]]) -> Select[tuple[Contact]]:
        return stmt.order_by(contact_table.c.created_at.asc(), contact_table.c.id.asc())


if TYPE_CHECKING:
    from contactlink.domain.ports.persistence import ContactRepository

    _session_stub = cast("Session", object())
    _repo_check: ContactRepository = SqlAlchemyContactRepository(_session_stub)
