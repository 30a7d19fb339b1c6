"""Alembic migrations of the engine-owned tables, run from code."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from typedupe.config import get_database_config

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
VERSION_TABLE: Final[str] = "typedupe_alembic_version"

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _build_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    config.set_main_option("version_locations", str(MIGRATIONS_PATH / "versions"))
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring ``typedupe_stream_state`` to the latest revision.

    With ``engine`` the upgrade runs on one of its connections (required for
    in-memory SQLite, where every connection is a separate database unless pooled
    statically); otherwise Alembic connects to ``database_uri`` or ``DATABASE_URI``.
    """

    config = _build_config()
    if engine is None:
        config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
        command.upgrade(config, "head")
        return
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
