"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "contactlink"
DEFAULT_DB_FILENAME: Final[str] = "contactlink.db"
DEFAULT_ISOLATION_LEVEL: Final[str] = "SERIALIZABLE"
# only SERIALIZABLE blocks concurrent inserts of the same new identifier
SUPPORTED_ISOLATION_LEVELS: Final[frozenset[str]] = frozenset({"SERIALIZABLE"})


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Connection settings for the contact store.

    ``isolation_level`` applies to server databases; SQLite serializes writers
    with ``BEGIN IMMEDIATE`` instead.
    """

    uri: str
    isolation_level: str = DEFAULT_ISOLATION_LEVEL


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def _isolation_level_from_env() -> str:
    raw = os.getenv("CONTACTLINK_ISOLATION_LEVEL")
    if raw is None or not raw.strip():
        return DEFAULT_ISOLATION_LEVEL
    level = " ".join(raw.replace("_", " ").split()).upper()
    if level not in SUPPORTED_ISOLATION_LEVELS:
        supported = ", ".join(sorted(SUPPORTED_ISOLATION_LEVELS))
        raise ConfigurationError(
            f"Unsupported isolation level {raw!r} (expected one of: {supported})"
        )
    return level


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("CONTACTLINK_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    isolation_level = _isolation_level_from_env()
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri, isolation_level=isolation_level)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri(), isolation_level=isolation_level)
