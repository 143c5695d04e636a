from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from contactlink import app
from contactlink.adapters.sqlalchemy.unit_of_work import is_started, shutdown
from contactlink.domain.errors import ContactNotFoundError, InvalidRequestError, StorageError

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from contactlink.adapters.sqlalchemy.unit_of_work import SqlAlchemyContactUnitOfWork


def test_identify_contact_uses_given_unit_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyContactUnitOfWork],
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.INFO, logger="contactlink.app"):
        view = app.identify_contact(
            email="a@x.com",
            phone_number="123",
            unit_of_work_factory=sqlite_unit_of_work,
        )

    assert view.emails == ("a@x.com",)
    assert view.phone_numbers == ("123",)
    assert "Identification successful" in caplog.text


def test_show_identity_reads_existing_cluster(
    sqlite_unit_of_work: Callable[[], SqlAlchemyContactUnitOfWork],
) -> None:
    created = app.identify_contact(email="a@x.com", unit_of_work_factory=sqlite_unit_of_work)
    extended = app.identify_contact(
        email="a@x.com",
        phone_number="123",
        unit_of_work_factory=sqlite_unit_of_work,
    )

    shown = app.show_identity(
        contact_id=created.primary_contact_id,
        unit_of_work_factory=sqlite_unit_of_work,
    )

    assert shown == extended


def test_show_identity_of_unknown_contact(
    sqlite_unit_of_work: Callable[[], SqlAlchemyContactUnitOfWork],
) -> None:
    with pytest.raises(ContactNotFoundError):
        app.show_identity(contact_id=404, unit_of_work_factory=sqlite_unit_of_work)


def test_identify_contact_rejects_empty_request() -> None:
    def factory() -> SqlAlchemyContactUnitOfWork:
        raise AssertionError("store must not be touched")

    with pytest.raises(InvalidRequestError):
        app.identify_contact(unit_of_work_factory=factory)


def test_identify_contact_starts_default_store(monkeypatch: pytest.MonkeyPatch) -> None:
    started: list[bool] = []
    monkeypatch.setattr(app, "is_started", lambda: False)
    monkeypatch.setattr(app, "startup", lambda: started.append(True))

    class _Resolver:
        def __init__(self, factory: object) -> None:
            self.factory = factory

        def identify(self, **_: object) -> object:
            raise InvalidRequestError("stop here")

    monkeypatch.setattr(app, "IdentityResolver", _Resolver)

    with pytest.raises(InvalidRequestError):
        app.identify_contact(email="a@x.com")

    assert started == [True]


def test_identify_contact_reports_unreachable_store(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    shutdown()
    unreachable = tmp_path / "missing-dir" / "contacts.db"
    monkeypatch.setenv("DATABASE_URI", f"sqlite+pysqlite:///{unreachable}")

    try:
        with pytest.raises(StorageError):
            app.identify_contact(email="a@x.com")
        assert not is_started()
    finally:
        shutdown()
