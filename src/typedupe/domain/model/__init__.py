"""Domain model for typed, deduplicated streams."""

from __future__ import annotations

from .records import (
    MISSING,
    FieldCastError,
    RawRecord,
    RecordVersion,
    TypedRow,
    VersionOrder,
    field_value,
    new_raw_id,
)
from .schema import (
    CURSOR_COLUMN_TYPES,
    DATA_COLUMN,
    DEFAULT_TOMBSTONE_FIELD,
    EXTRACTED_AT_COLUMN,
    KEY_COLUMN_TYPES,
    LOADED_AT_COLUMN,
    META_COLUMN,
    RAW_ID_COLUMN,
    RESERVED_COLUMN_NAMES,
    ColumnSpec,
    ColumnType,
    InvalidSchemaError,
    StreamSchema,
)
from .state import StreamState

__all__ = [
    "CURSOR_COLUMN_TYPES",
    "DATA_COLUMN",
    "DEFAULT_TOMBSTONE_FIELD",
    "EXTRACTED_AT_COLUMN",
    "KEY_COLUMN_TYPES",
    "LOADED_AT_COLUMN",
    "META_COLUMN",
    "MISSING",
    "RAW_ID_COLUMN",
    "RESERVED_COLUMN_NAMES",
    "ColumnSpec",
    "ColumnType",
    "FieldCastError",
    "InvalidSchemaError",
    "RawRecord",
    "RecordVersion",
    "StreamSchema",
    "StreamState",
    "TypedRow",
    "VersionOrder",
    "field_value",
    "new_raw_id",
]
