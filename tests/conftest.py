from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from contactlink.adapters.sqlalchemy import start_mappers
from contactlink.adapters.sqlalchemy.migrations import upgrade_head
from contactlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    create_contact_engine,
    shutdown,
    startup,
)
from contactlink.domain.identity import IdentityResolver
from tests.helpers.contacts import InMemoryContactStore

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_contact_engine("sqlite+pysqlite:///:memory:")
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyContactUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyContactUnitOfWork:
        return SqlAlchemyContactUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def contact_store() -> InMemoryContactStore:
    return InMemoryContactStore()


@pytest.fixture
def resolver(contact_store: InMemoryContactStore) -> IdentityResolver:
    return IdentityResolver(contact_store.unit_of_work)
