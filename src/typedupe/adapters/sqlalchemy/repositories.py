"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from itertools import batched
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import delete, func, insert, select, update

from typedupe.domain.model import (
    DATA_COLUMN,
    EXTRACTED_AT_COLUMN,
    LOADED_AT_COLUMN,
    META_COLUMN,
    RAW_ID_COLUMN,
    FieldCastError,
    RawRecord,
    StreamState,
    TypedRow,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator, Mapping
    from datetime import datetime

    from sqlalchemy import RowMapping
    from sqlalchemy.orm import Session

    from .mappings import StreamTables

# bound parameters per IN (...) list
IN_CLAUSE_CHUNK: Final[int] = 500
SCAN_BATCH: Final[int] = 1000


def _chunks[T](values: Iterable[T]) -> Iterator[tuple[T, ...]]:
    return batched(values, IN_CLAUSE_CHUNK)


class SqlAlchemyRawLogRepository:
    def __init__(self, session: Session, tables: StreamTables) -> None:
        self.session = session
        self.table = tables.raw

    def add(self, entity: RawRecord) -> None:
        self.extend([entity])

    def extend(self, entities: Iterable[RawRecord]) -> int:
        values = [
            {
                RAW_ID_COLUMN: record.raw_id,
                DATA_COLUMN: record.payload,
                EXTRACTED_AT_COLUMN: record.extracted_at,
                LOADED_AT_COLUMN: record.loaded_at,
            }
            for record in entities
        ]
        if values:
            self.session.execute(insert(self.table), values)
        return len(values)

    def pending(self) -> list[RawRecord]:
        columns = self.table.c
        stmt = (
            select(self.table)
            .where(columns[LOADED_AT_COLUMN].is_(None))
            .order_by(columns[EXTRACTED_AT_COLUMN], columns[RAW_ID_COLUMN])
        )
        return [self._to_record(row) for row in self.session.execute(stmt).mappings()]

    def scan(self) -> Iterator[RawRecord]:
        stmt = select(self.table).execution_options(yield_per=SCAN_BATCH)
        for row in self.session.execute(stmt).mappings():
            yield self._to_record(row)

    def delete(self, raw_ids: Collection[str]) -> int:
        removed = 0
        for chunk in _chunks(raw_ids):
            stmt = delete(self.table).where(self.table.c[RAW_ID_COLUMN].in_(chunk))
            removed += _rowcount(self.session.execute(stmt))
        return removed

    def mark_loaded(self, raw_ids: Collection[str], *, loaded_at: datetime) -> int:
        columns = self.table.c
        marked = 0
        for chunk in _chunks(raw_ids):
            stmt = (
                update(self.table)
                .where(columns[LOADED_AT_COLUMN].is_(None))
                .where(columns[RAW_ID_COLUMN].in_(chunk))
                .values({LOADED_AT_COLUMN: loaded_at})
            )
            marked += _rowcount(self.session.execute(stmt))
        return marked

    def count(self) -> int:
        stmt = select(func.count()).select_from(self.table)
        return self.session.execute(stmt).scalar_one()

    def _to_record(self, row: RowMapping) -> RawRecord:
        return RawRecord(
            raw_id=row[RAW_ID_COLUMN],
            payload=row[DATA_COLUMN],
            extracted_at=row[EXTRACTED_AT_COLUMN],
            loaded_at=row[LOADED_AT_COLUMN],
        )


class SqlAlchemyTypedTableRepository:
    def __init__(self, session: Session, tables: StreamTables) -> None:
        self.session = session
        self.schema = tables.schema
        self.table = tables.typed
        self.key_column = tables.key_column

    def add(self, entity: TypedRow) -> None:
        self.extend([entity])

    def extend(self, entities: Iterable[TypedRow]) -> int:
        values = [self._to_values(row) for row in entities]
        if values:
            self.session.execute(insert(self.table), values)
        return len(values)

    def get(self, key: object) -> TypedRow | None:
        rows = self.rows_for_keys([key])
        if not rows:
            return None
        return max(rows, key=lambda row: row.order.sort_key())  # pyright: ignore[reportUnknownLambdaType, reportArgumentType]

    def rows(self) -> list[TypedRow]:
        stmt = select(self.table).order_by(self.key_column, self.table.c[RAW_ID_COLUMN])
        return [self._to_row(row) for row in self.session.execute(stmt).mappings()]

    def rows_for_keys(self, keys: Collection[object]) -> list[TypedRow]:
        rows: list[TypedRow] = []
        for chunk in _chunks(keys):
            stmt = select(self.table).where(self.key_column.in_(chunk))
            rows.extend(self._to_row(row) for row in self.session.execute(stmt).mappings())
        return rows

    def duplicate_keys(self) -> list[object]:
        stmt = (
            select(self.key_column)
            .group_by(self.key_column)
            .having(func.count() > 1)
            .order_by(self.key_column)
        )
        return list(self.session.execute(stmt).scalars())

    def delete_by_raw_ids(self, raw_ids: Collection[str]) -> int:
        removed = 0
        for chunk in _chunks(raw_ids):
            stmt = delete(self.table).where(self.table.c[RAW_ID_COLUMN].in_(chunk))
            removed += _rowcount(self.session.execute(stmt))
        return removed

    def delete_keys(self, keys: Collection[object]) -> int:
        removed = 0
        for chunk in _chunks(keys):
            stmt = delete(self.table).where(self.key_column.in_(chunk))
            removed += _rowcount(self.session.execute(stmt))
        return removed

    def _to_values(self, row: TypedRow) -> dict[str, object]:
        values: dict[str, object] = {name: row.columns.get(name) for name in self.schema.column_names}
        values[RAW_ID_COLUMN] = row.source_raw_id
        values[EXTRACTED_AT_COLUMN] = row.source_extracted_at
        values[META_COLUMN] = {"errors": list(row.error_columns)}
        return values

    def _to_row(self, row: RowMapping) -> TypedRow:
        columns = {name: row[name] for name in self.schema.column_names}
        meta = cast("Mapping[str, Any] | None", row[META_COLUMN]) or {}
        cursor = self.schema.cursor
        return TypedRow(
            key=columns[self.schema.primary_key],
            columns=columns,
            cursor=columns[cursor] if cursor is not None else None,
            source_raw_id=row[RAW_ID_COLUMN],
            source_extracted_at=row[EXTRACTED_AT_COLUMN],
            error_manifest=tuple(FieldCastError(str(name)) for name in meta.get("errors", ())),
        )


class SqlAlchemyStreamStateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, stream_name: str) -> StreamState | None:
        return self.session.get(StreamState, stream_name)

    def claim(self, stream_name: str, *, started_at: datetime) -> StreamState:
        """Lock (or create) the stream's row for the rest of the transaction."""

        state = self.session.get(StreamState, stream_name, with_for_update=True)
        if state is None:
            state = StreamState(stream_name=stream_name)
            self.session.add(state)
        state.last_started_at = started_at
        # the write takes SQLite's database lock where FOR UPDATE is a no-op
        self.session.flush()
        return state

    def record_completion(
        self,
        stream_name: str,
        *,
        completed_at: datetime,
        loaded: int,
    ) -> StreamState:
        state = self.session.get(StreamState, stream_name)
        if state is None:
            state = StreamState(stream_name=stream_name)
            self.session.add(state)
        state.last_completed_at = completed_at
        state.runs_completed += 1
        state.last_loaded_count = loaded
        self.session.flush()
        return state


def _rowcount(result: object) -> int:
    return cast("int", getattr(result, "rowcount", 0))
