"""Caster/materializer stage: raw records to typed candidate rows.

Pure transformation. Nothing is written here; the candidates are folded into the
typed table by the reconciler inside the same unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from typedupe.domain.casting import DEFAULT_CAST_POLICY, CastPolicy, safe_cast
from typedupe.domain.model import (
    MISSING,
    FieldCastError,
    RecordVersion,
    TypedRow,
    VersionOrder,
    field_value,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from typedupe.domain.model import ColumnSpec, RawRecord, StreamSchema

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Materialization:
    """Candidates produced from one batch of pending raw records."""

    rows: list[TypedRow] = field(default_factory=list[TypedRow])
    skipped_tombstones: int = 0

    @property
    def rows_with_errors(self) -> int:
        return sum(1 for row in self.rows if row.has_errors)


class MaterializeBatch(Protocol):
    """Turn pending raw records into typed candidate rows."""

    def __call__(
        self,
        records: Iterable[RawRecord],
        *,
        schema: StreamSchema,
        policy: CastPolicy,
    ) -> Materialization: ...


def cast_field(
    payload: object,
    column: ColumnSpec,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> tuple[object | None, FieldCastError | None]:
    """Cast one payload field, reporting an error only for present, non-null values."""

    raw_value = field_value(payload, column.name)
    if raw_value is MISSING or raw_value is None:
        return None, None
    value = safe_cast(raw_value, column.type, policy)
    if value is None:
        return None, FieldCastError(column.name)
    return value, None


def cast_key(record: RawRecord, *, schema: StreamSchema, policy: CastPolicy) -> object | None:
    value, _ = cast_field(record.payload, schema.key_column, policy)
    return value


def cast_cursor(record: RawRecord, *, schema: StreamSchema, policy: CastPolicy) -> object | None:
    cursor_column = schema.cursor_column
    if cursor_column is None:
        return None
    value, _ = cast_field(record.payload, cursor_column, policy)
    return value


def record_version(
    record: RawRecord,
    *,
    schema: StreamSchema,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> RecordVersion | None:
    """Return the ordering view of ``record`` or ``None`` if its key does not cast."""

    key = cast_key(record, schema=schema, policy=policy)
    if key is None:
        return None
    return RecordVersion(
        key=key,
        order=VersionOrder(
            cast_cursor(record, schema=schema, policy=policy),
            record.extracted_at,
            record.raw_id,
        ),
        is_tombstone=record.is_tombstone(schema.tombstone_field),
        is_pending=record.is_pending,
    )


def materialize_record(
    record: RawRecord,
    *,
    schema: StreamSchema,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> TypedRow:
    values: dict[str, object] = {}
    errors: list[FieldCastError] = []
    for column in schema.columns:
        value, error = cast_field(record.payload, column, policy)
        values[column.name] = value
        if error is not None:
            errors.append(error)

    return TypedRow(
        key=values[schema.primary_key],
        columns=values,
        cursor=values[schema.cursor] if schema.cursor is not None else None,
        source_raw_id=record.raw_id,
        source_extracted_at=record.extracted_at,
        error_manifest=tuple(errors),
    )


def materialize_batch(
    records: Iterable[RawRecord],
    *,
    schema: StreamSchema,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> Materialization:
    """Materialize every non-tombstone record of the batch."""

    materialization = Materialization()
    for record in records:
        if record.is_tombstone(schema.tombstone_field):
            materialization.skipped_tombstones += 1
            continue
        materialization.rows.append(materialize_record(record, schema=schema, policy=policy))

    log.debug(
        "Materialized %s rows for %s (%s with cast errors, %s tombstones skipped)",
        len(materialization.rows),
        schema.name,
        materialization.rows_with_errors,
        materialization.skipped_tombstones,
    )
    return materialization
