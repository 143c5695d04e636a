"""Identity resolution: match, merge and link contacts into identity clusters.

Every call runs inside a single unit of work. Changes are staged in memory and
written in one batch before the commit, so a failure at any step leaves the
store untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from contactlink.domain.errors import (
    ContactNotFoundError,
    InvalidRequestError,
    NotFoundInconsistencyError,
)
from contactlink.domain.model import Contact, LinkPrecedence

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterable, Sequence

    from contactlink.domain.ports import ContactRepository, ContactUnitOfWork

    type UnitOfWorkFactory = Callable[[], ContactUnitOfWork]


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IdentityView:
    """Consolidated view of one identity cluster."""

    primary_contact_id: int
    emails: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    secondary_contact_ids: tuple[int, ...] = ()

    def to_payload(self) -> dict[str, dict[str, object]]:
        return {
            "contact": {
                "primaryContactId": self.primary_contact_id,
                "emails": list(self.emails),
                "phoneNumbers": list(self.phone_numbers),
                "secondaryContactIds": list(self.secondary_contact_ids),
            }
        }


@dataclass(slots=True)
class IdentifyOutcome:
    """What a single ``identify`` call changed in the store."""

    created: list[int] = field(default_factory=list[int])
    relinked: list[int] = field(default_factory=list[int])
    demoted: list[int] = field(default_factory=list[int])

    @property
    def changed(self) -> bool:
        return bool(self.created or self.relinked or self.demoted)


def ordered_unique[T: Hashable](values: Iterable[T | None]) -> list[T]:
    """Drop ``None`` and repeated values, keeping first-seen order."""

    seen: set[T] = set()
    result: list[T] = []
    for value in values:
        if value is None or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def build_view(primary: Contact, cluster: Sequence[Contact]) -> IdentityView:
    """Build the response for ``primary`` from its (creation ordered) cluster."""

    if primary.id is None:
        raise ValueError("Primary contact has not been persisted yet")
    secondaries = sorted(
        (contact for contact in cluster if contact.id != primary.id),
        key=lambda contact: contact.sort_key,
    )
    emails = ordered_unique([primary.email, *(contact.email for contact in secondaries)])
    phone_numbers = ordered_unique(
        [primary.phone_number, *(contact.phone_number for contact in secondaries)]
    )
    return IdentityView(
        primary_contact_id=primary.id,
        emails=tuple(emails),
        phone_numbers=tuple(phone_numbers),
        secondary_contact_ids=tuple(
            contact.id for contact in secondaries if contact.id is not None
        ),
    )


class IdentityResolver:
    """Resolve email/phone observations into identity clusters."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def identify(
        self,
        email: str | None = None,
        phone_number: str | None = None,
    ) -> IdentityView:
        """Attach the observation to its identity, creating or merging clusters as needed.

        ``email`` and ``phone_number`` are expected in canonical form. Blank values
        count as absent; at least one of them must be present.
        """

        email = email or None
        phone_number = phone_number or None
        if email is None and phone_number is None:
            raise InvalidRequestError("Either email or phone number must be provided")

        with self._unit_of_work_factory() as uow:
            view, outcome = _resolve(uow.repositories.contacts, email, phone_number)
            uow.commit()

        if outcome.changed:
            log.info(
                "Resolved identity %s: created=%s, relinked=%s, demoted=%s",
                view.primary_contact_id,
                outcome.created,
                outcome.relinked,
                outcome.demoted,
            )
        else:
            log.debug("Resolved identity %s without changes", view.primary_contact_id)
        return view

    def view(self, contact_id: int) -> IdentityView:
        """Return the current view of the cluster ``contact_id`` belongs to, read-only."""

        with self._unit_of_work_factory() as uow:
            contacts = uow.repositories.contacts
            contact = contacts.get(contact_id)
            if contact is None:
                raise ContactNotFoundError(f"Contact {contact_id} does not exist")
            primary = _load_root(contacts, contact, {})
            if primary.id is None:
                raise ValueError("Primary contact has not been persisted yet")
            cluster = contacts.find_by_cluster_primary(primary.id)
            # read-only units of work roll back on exit, which detaches loaded rows
            return build_view(primary, cluster)


def _resolve(
    contacts: ContactRepository,
    email: str | None,
    phone_number: str | None,
) -> tuple[IdentityView, IdentifyOutcome]:
    outcome = IdentifyOutcome()

    matches = contacts.find_matching(email, phone_number)
    log.debug(
        "Matched %d contact(s) for email=%s phone=%s",
        len(matches),
        email is not None,
        phone_number is not None,
    )

    if not matches:
        contact = contacts.create(
            email=email,
            phone_number=phone_number,
            link_precedence=LinkPrecedence.PRIMARY,
        )
        outcome.created.append(_require_id(contact))
        return build_view(contact, [contact]), outcome

    roots = _collect_roots(contacts, matches)
    survivor = min(roots, key=lambda root: root.sort_key)

    staged: dict[int, Contact] = {}
    for root in roots:
        if root is survivor:
            continue
        # the demoted root comes back as a member of its own cluster
        for member in contacts.find_by_cluster_primary(_require_id(root)):
            if member.link_to(survivor):
                staged[_require_id(member)] = member
        outcome.demoted.append(_require_id(root))

    for contact in matches:
        if contact is survivor:
            continue
        if contact.link_to(survivor):
            staged[_require_id(contact)] = contact

    outcome.relinked.extend(
        contact_id for contact_id in staged if contact_id not in outcome.demoted
    )
    if staged:
        contacts.save_all(staged.values())

    # every contact carrying the request's email or phone is in ``matches``
    known_emails = {contact.email for contact in matches if contact.email}
    known_phone_numbers = {contact.phone_number for contact in matches if contact.phone_number}
    has_new_email = email is not None and email not in known_emails
    has_new_phone_number = phone_number is not None and phone_number not in known_phone_numbers
    if has_new_email or has_new_phone_number:
        contact = contacts.create(
            email=email,
            phone_number=phone_number,
            link_precedence=LinkPrecedence.SECONDARY,
            linked_id=survivor.id,
        )
        outcome.created.append(_require_id(contact))

    cluster = contacts.find_by_cluster_primary(_require_id(survivor))
    return build_view(survivor, cluster), outcome


def _collect_roots(contacts: ContactRepository, matches: Sequence[Contact]) -> list[Contact]:
    """Distinct primaries of the clusters touched by ``matches``, in first-seen order."""

    loaded = {contact.id: contact for contact in matches}
    roots: dict[int, Contact] = {}
    for contact in matches:
        root = _load_root(contacts, contact, loaded)
        roots.setdefault(_require_id(root), root)
    return list(roots.values())


def _load_root(
    contacts: ContactRepository,
    contact: Contact,
    loaded: dict[int | None, Contact],
) -> Contact:
    if contact.is_primary:
        return contact
    root_id = contact.root_id
    if root_id is None:
        raise NotFoundInconsistencyError(
            f"Secondary contact {contact.id} has no linked primary",
            contact_id=contact.id,
        )
    root = loaded.get(root_id) or contacts.get(root_id)
    if root is None:
        raise NotFoundInconsistencyError(
            f"Contact {contact.id} is linked to missing contact {root_id}",
            contact_id=contact.id,
        )
    if not root.is_primary:
        raise NotFoundInconsistencyError(
            f"Contact {contact.id} is linked to {root_id}, which is not a primary",
            contact_id=contact.id,
        )
    return root


def _require_id(contact: Contact) -> int:
    if contact.id is None:
        raise ValueError("Contact has not been persisted yet")
    return contact.id
