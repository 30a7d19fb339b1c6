"""Stream schema descriptors.

A ``StreamSchema`` is the explicit, passed-in description of one stream's typed
table: which columns exist, which one addresses rows, which one orders versions and
which payload field marks a CDC deletion.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

DEFAULT_TOMBSTONE_FIELD: Final[str] = "_ab_cdc_deleted_at"

RAW_ID_COLUMN: Final[str] = "_raw_id"
EXTRACTED_AT_COLUMN: Final[str] = "_extracted_at"
LOADED_AT_COLUMN: Final[str] = "_loaded_at"
DATA_COLUMN: Final[str] = "_data"
META_COLUMN: Final[str] = "_meta"

RESERVED_COLUMN_NAMES: Final[frozenset[str]] = frozenset(
    {RAW_ID_COLUMN, EXTRACTED_AT_COLUMN, LOADED_AT_COLUMN, DATA_COLUMN, META_COLUMN}
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ColumnType(StrEnum):
    """Semantic target types a raw field can be cast to."""

    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"
    TIMESTAMP = "timestamp"
    JSON = "json"


KEY_COLUMN_TYPES: Final[frozenset[ColumnType]] = frozenset({ColumnType.INTEGER, ColumnType.TEXT})
CURSOR_COLUMN_TYPES: Final[frozenset[ColumnType]] = frozenset(
    {ColumnType.INTEGER, ColumnType.NUMBER, ColumnType.TEXT, ColumnType.TIMESTAMP}
)


class InvalidSchemaError(ValueError):
    """Raised when a stream schema descriptor is internally inconsistent."""


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    name: str
    type: ColumnType


@dataclass(frozen=True, slots=True)
class StreamSchema:
    """Typed-table layout for one stream.

    ``tombstone_field`` names the payload field whose non-null presence marks a CDC
    deletion; ``None`` disables tombstone handling for the stream.
    """

    name: str
    columns: tuple[ColumnSpec, ...]
    primary_key: str
    cursor: str | None = None
    tombstone_field: str | None = DEFAULT_TOMBSTONE_FIELD
    _by_name: dict[str, ColumnSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not _IDENTIFIER.match(self.name):
            raise InvalidSchemaError(f"Invalid stream name: {self.name!r}")
        if not self.columns:
            raise InvalidSchemaError(f"Stream {self.name} declares no columns")

        by_name: dict[str, ColumnSpec] = {}
        for column in self.columns:
            if not _IDENTIFIER.match(column.name):
                raise InvalidSchemaError(f"Invalid column name in {self.name}: {column.name!r}")
            if column.name in RESERVED_COLUMN_NAMES:
                raise InvalidSchemaError(
                    f"Column {column.name} of {self.name} collides with a reserved column"
                )
            if column.name in by_name:
                raise InvalidSchemaError(f"Duplicate column {column.name} in {self.name}")
            by_name[column.name] = column
        object.__setattr__(self, "_by_name", by_name)

        key = by_name.get(self.primary_key)
        if key is None:
            raise InvalidSchemaError(
                f"Primary key {self.primary_key} is not a column of {self.name}"
            )
        if key.type not in KEY_COLUMN_TYPES:
            raise InvalidSchemaError(
                f"Primary key {self.primary_key} of {self.name} has unsupported type {key.type}"
            )

        if self.cursor is not None:
            cursor = by_name.get(self.cursor)
            if cursor is None:
                raise InvalidSchemaError(f"Cursor {self.cursor} is not a column of {self.name}")
            if cursor.type not in CURSOR_COLUMN_TYPES:
                raise InvalidSchemaError(
                    f"Cursor {self.cursor} of {self.name} has unorderable type {cursor.type}"
                )

    def column(self, name: str) -> ColumnSpec:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown column {name} in stream {self.name}") from None

    @property
    def key_column(self) -> ColumnSpec:
        return self._by_name[self.primary_key]

    @property
    def cursor_column(self) -> ColumnSpec | None:
        if self.cursor is None:
            return None
        return self._by_name[self.cursor]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)
