"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env
from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "typedupe"
DEFAULT_DB_FILENAME: Final[str] = "typedupe.db"
DEFAULT_RAW_TABLE_SUFFIX: Final[str] = "_raw"
ISOLATION_LEVELS: Final[frozenset[str]] = frozenset(
    {"AUTOCOMMIT", "READ UNCOMMITTED", "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"}
)


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local directory holding the default SQLite database."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_uri(self, *, create_dir: bool = True) -> str:
        data_dir = self.resolve_data_dir()
        if create_dir:
            data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{data_dir / self.database_filename}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    isolation_level: str | None = None


@dataclass(frozen=True, slots=True)
class TableNaming:
    """Where a stream's raw log and typed table live.

    The raw log of stream ``users`` is ``<raw_schema>.users_raw``; its typed table is
    ``<final_schema>.users``. ``None`` schemas mean the connection's default schema.
    """

    raw_schema: str | None = None
    final_schema: str | None = None
    raw_table_suffix: str = DEFAULT_RAW_TABLE_SUFFIX

    def __post_init__(self) -> None:
        if not self.raw_table_suffix and self.raw_schema == self.final_schema:
            raise ConfigurationError(
                "An empty raw table suffix needs distinct raw and final schemas"
            )

    def raw_table_name(self, stream: str) -> str:
        return f"{stream}{self.raw_table_suffix}"

    def typed_table_name(self, stream: str) -> str:
        return stream


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = optional_env("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        base = optional_env("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    """Read ``TYPEDUPE_DATA_DIR``, defaulting to the platform data directory."""

    env_dir = optional_env("TYPEDUPE_DATA_DIR")
    return StorageConfig(data_dir=Path(env_dir) if env_dir else _default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    isolation_level = optional_env("TYPEDUPE_ISOLATION_LEVEL")
    if isolation_level is not None:
        isolation_level = isolation_level.upper().replace("_", " ")
        if isolation_level not in ISOLATION_LEVELS:
            raise ConfigurationError(
                f"Unknown TYPEDUPE_ISOLATION_LEVEL {isolation_level!r}; "
                f"expected one of {', '.join(sorted(ISOLATION_LEVELS))}"
            )

    uri = optional_env("DATABASE_URI") or (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri, isolation_level=isolation_level)


def get_table_naming() -> TableNaming:
    suffix = os.getenv("TYPEDUPE_RAW_TABLE_SUFFIX")
    return TableNaming(
        raw_schema=optional_env("TYPEDUPE_RAW_SCHEMA"),
        final_schema=optional_env("TYPEDUPE_FINAL_SCHEMA"),
        raw_table_suffix=DEFAULT_RAW_TABLE_SUFFIX if suffix is None else suffix.strip(),
    )
