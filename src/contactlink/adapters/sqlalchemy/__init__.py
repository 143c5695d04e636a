"""SQLAlchemy adapter package for contactlink."""

from __future__ import annotations

from .mappings import contact_table, create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyContactRepository
from .unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    StartupError,
    create_contact_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyContactRepository",
    "SqlAlchemyContactUnitOfWork",
    "StartupError",
    "contact_table",
    "create_all_tables",
    "create_contact_engine",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
