"""SQLAlchemy table metadata for typedupe.

The engine-owned bookkeeping table lives in ``mapper_registry.metadata`` and is
managed by Alembic. Raw logs and typed tables are built per stream from its
``StreamSchema`` at runtime and live in their own ``MetaData``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from typedupe.domain.model import (
    DATA_COLUMN,
    EXTRACTED_AT_COLUMN,
    LOADED_AT_COLUMN,
    META_COLUMN,
    RAW_ID_COLUMN,
    ColumnType,
    StreamState,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.types import TypeEngine

    from typedupe.config import TableNaming
    from typedupe.domain.model import StreamSchema

log = logging.getLogger(__name__)

RAW_ID_LENGTH: Final[int] = 64

NAMING_CONVENTION: Final[dict[str, str]] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class ExactDecimal(TypeDecorator[Decimal]):
    """Unbounded ``NUMERIC``; SQLite keeps the decimal's text since it only has floats."""

    impl = Numeric(asdecimal=True)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String())
        return dialect.type_descriptor(Numeric(asdecimal=True))

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> Any:  # noqa: ANN401
        if value is None or dialect.name != "sqlite":
            return value
        return str(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:  # noqa: ANN401
        _ = dialect
        if value is None:
            return None
        return value if isinstance(value, Decimal) else Decimal(str(value))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = NAMING_CONVENTION

# Engine bookkeeping ------------------------------------------------------------

stream_state_table = Table(
    "typedupe_stream_state",
    mapper_registry.metadata,
    Column("stream_name", String(255), primary_key=True),
    Column("last_started_at", UTCDateTime(), nullable=True),
    Column("last_completed_at", UTCDateTime(), nullable=True),
    Column("runs_completed", Integer, nullable=False, default=0),
    Column("last_loaded_count", Integer, nullable=False, default=0),
)


@cache
def start_mappers() -> orm.registry:
    """Map the bookkeeping entities onto their tables (once per process)."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(StreamState, stream_state_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create the engine-owned tables without going through migrations."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)


# Per-stream tables ---------------------------------------------------------------


def _column_type(column_type: ColumnType) -> TypeEngine[Any]:
    match column_type:
        case ColumnType.INTEGER:
            return BigInteger()
        case ColumnType.NUMBER:
            return ExactDecimal()
        case ColumnType.BOOLEAN:
            return Boolean(create_constraint=False)
        case ColumnType.TEXT:
            return Text()
        case ColumnType.TIMESTAMP:
            return UTCDateTime()
        case ColumnType.JSON:
            return JSON(none_as_null=True)


@dataclass(frozen=True, slots=True)
class StreamTables:
    """The raw log and the typed table of one stream."""

    schema: StreamSchema
    raw: Table
    typed: Table

    @property
    def key_column(self) -> Column[Any]:
        return self.typed.c[self.schema.primary_key]


@cache
def stream_tables(schema: StreamSchema, naming: TableNaming) -> StreamTables:
    """Build (once) the table objects for ``schema`` under ``naming``."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    raw_name = naming.raw_table_name(schema.name)
    raw = Table(
        raw_name,
        metadata,
        Column(RAW_ID_COLUMN, String(RAW_ID_LENGTH), primary_key=True),
        Column(DATA_COLUMN, JSON, nullable=False),
        Column(EXTRACTED_AT_COLUMN, UTCDateTime(), nullable=False),
        Column(LOADED_AT_COLUMN, UTCDateTime(), nullable=True),
        Index(f"ix_{raw_name}_extracted_at", EXTRACTED_AT_COLUMN),
        Index(f"ix_{raw_name}_loaded_at", LOADED_AT_COLUMN),
        schema=naming.raw_schema,
    )

    typed_name = naming.typed_table_name(schema.name)
    typed = Table(
        typed_name,
        metadata,
        *(Column(column.name, _column_type(column.type), nullable=True) for column in schema.columns),
        Column(RAW_ID_COLUMN, String(RAW_ID_LENGTH), primary_key=True),
        Column(EXTRACTED_AT_COLUMN, UTCDateTime(), nullable=False),
        Column(META_COLUMN, JSON, nullable=False),
        # not unique: candidates share a key until duplicates are resolved
        Index(f"ix_{typed_name}_{schema.primary_key}", schema.primary_key),
        schema=naming.final_schema,
    )

    return StreamTables(schema=schema, raw=raw, typed=typed)
