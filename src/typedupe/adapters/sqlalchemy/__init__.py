"""SQLAlchemy adapter package for typedupe."""

from __future__ import annotations

from .mappings import (
    ExactDecimal,
    StreamTables,
    UTCDateTime,
    create_all_tables,
    mapper_registry,
    start_mappers,
    stream_state_table,
    stream_tables,
)
from .provisioning import prepare_raw_table, prepare_typed_table
from .repositories import (
    SqlAlchemyRawLogRepository,
    SqlAlchemyStreamStateRepository,
    SqlAlchemyTypedTableRepository,
)
from .unit_of_work import (
    SqlAlchemyStreamUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    require_engine,
    shutdown,
    startup,
)

__all__ = [
    "ExactDecimal",
    "SqlAlchemyRawLogRepository",
    "SqlAlchemyStreamStateRepository",
    "SqlAlchemyStreamUnitOfWork",
    "SqlAlchemyTypedTableRepository",
    "StartupError",
    "StreamTables",
    "UTCDateTime",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "prepare_raw_table",
    "prepare_typed_table",
    "require_engine",
    "shutdown",
    "start_mappers",
    "startup",
    "stream_state_table",
    "stream_tables",
]
