"""Idempotent provisioning of per-stream tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.schema import CreateSchema

from .mappings import StreamTables, stream_tables

if TYPE_CHECKING:
    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

    from typedupe.config import TableNaming
    from typedupe.domain.model import StreamSchema

log = logging.getLogger(__name__)


def _create(connection: Connection, table: Table) -> None:
    if table.schema is not None:
        connection.execute(CreateSchema(table.schema, if_not_exists=True))
    table.create(connection, checkfirst=True)


def prepare_raw_table(engine: Engine, schema: StreamSchema, naming: TableNaming) -> StreamTables:
    """Create the raw log of ``schema`` (and its namespace) unless it exists."""

    tables = stream_tables(schema, naming)
    log.info("Preparing raw table %s", tables.raw.fullname)
    with engine.begin() as connection:
        _create(connection, tables.raw)
    return tables


def prepare_typed_table(engine: Engine, schema: StreamSchema, naming: TableNaming) -> StreamTables:
    """Create the typed table of ``schema`` (and its namespace) unless it exists."""

    tables = stream_tables(schema, naming)
    log.info("Preparing typed table %s", tables.typed.fullname)
    with engine.begin() as connection:
        _create(connection, tables.typed)
    return tables
