"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from contactlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    is_started,
    startup,
)
from contactlink.domain.identity import IdentityResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from contactlink.domain.identity import IdentityView
    from contactlink.domain.ports import ContactUnitOfWork

    type UnitOfWorkFactory = Callable[[], ContactUnitOfWork]


log = getLogger(__name__)


def _resolver(unit_of_work_factory: UnitOfWorkFactory | None) -> IdentityResolver:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyContactUnitOfWork
    return IdentityResolver(unit_of_work_factory)


def identify_contact(
    *,
    email: str | None = None,
    phone_number: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> IdentityView:
    """Resolve an already normalized email/phone observation to its identity."""

    log.info(
        "Identify called: has_email=%s, has_phone_number=%s",
        email is not None,
        phone_number is not None,
    )
    view = _resolver(unit_of_work_factory).identify(email=email, phone_number=phone_number)
    log.info("Identification successful: primary_contact_id=%s", view.primary_contact_id)
    return view


def show_identity(
    *,
    contact_id: int,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> IdentityView:
    """Return the identity a contact belongs to without changing anything."""

    return _resolver(unit_of_work_factory).view(contact_id)
