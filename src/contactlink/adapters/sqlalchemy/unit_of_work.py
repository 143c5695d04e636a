"""SQLAlchemy-backed unit of work for the contact store."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from contactlink.adapters.sqlalchemy.mappings import start_mappers
from contactlink.adapters.sqlalchemy.migrations import upgrade_head
from contactlink.adapters.sqlalchemy.repositories import SqlAlchemyContactRepository
from contactlink.config import get_database_config
from contactlink.domain.errors import StorageError
from contactlink.domain.ports.unit_of_work import ContactRepositories, RepositoryCollection

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.engine.interfaces import DBAPIConnection
    from sqlalchemy.pool import ConnectionPoolEntry

    from contactlink.config import DatabaseConfig

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call contactlink.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _serialize_sqlite_transactions(engine: Engine) -> None:
    """Take the database write lock when a transaction begins.

    Concurrent units of work on the same SQLite database then run one after the
    other instead of both reading before either writes.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(
        dbapi_connection: DBAPIConnection,
        connection_record: ConnectionPoolEntry,
    ) -> None:
        _ = connection_record
        dbapi_connection.isolation_level = None  # pyright: ignore[reportAttributeAccessIssue]

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection: Connection) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def create_contact_engine(database_uri: str, *, isolation_level: str | None = None) -> Engine:
    """Create an engine whose transactions are safe for concurrent identify calls."""

    if make_url(database_uri).get_backend_name() == "sqlite":
        engine = create_engine(database_uri, future=True)
        _serialize_sqlite_transactions(engine)
        return engine
    return create_engine(
        database_uri,
        future=True,
        isolation_level=isolation_level or get_database_config().isolation_level,
    )


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    config: DatabaseConfig | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        database_config = config or get_database_config()
        engine = create_contact_engine(
            database_uri or database_config.uri,
            isolation_level=database_config.isolation_level,
        )
    log.info("Starting contact store on %s", engine.url.render_as_string(hide_password=True))
    start_mappers()
    with _storage_errors("start"):
        upgrade_head(engine=engine)

    _STATE.engine = engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Contact store failed to {action}: {exc}") from exc


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Database errors raised inside the ``with`` block roll the transaction back
    and surface as :class:`StorageError`.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            # uncommitted work is discarded on every exit path
            self.rollback()
        finally:
            self.session.close()
            self.session = None
        if isinstance(exc_value, SQLAlchemyError):
            raise StorageError(f"Contact store operation failed: {exc_value}") from exc_value
        return False

    def commit(self) -> None:
        with _storage_errors("commit"):
            self.session.commit()

    def rollback(self) -> None:
        with _storage_errors("roll back"):
            self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyContactUnitOfWork(BaseSqlAlchemyUnitOfWork[ContactRepositories]):
    """Unit of work managing SQLAlchemy sessions for contacts."""

    def _build_repositories(self, session: Session) -> ContactRepositories:
        return ContactRepositories(contacts=SqlAlchemyContactRepository(session))


if TYPE_CHECKING:
    from contactlink.domain.ports.unit_of_work import ContactUnitOfWork

    _uow_check: ContactUnitOfWork = SqlAlchemyContactUnitOfWork()
