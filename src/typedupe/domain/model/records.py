"""Raw records, typed rows and the version order shared between them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final
from uuid import uuid4

if TYPE_CHECKING:
    from datetime import datetime


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


def new_raw_id() -> str:
    return str(uuid4())


def field_value(payload: object, name: str) -> object:
    """Return ``payload[name]`` or ``MISSING`` when the field is absent.

    Explicit JSON nulls come back as ``None`` so callers can tell an absent field
    from a null one. Non-object payloads have no fields.
    """

    if not isinstance(payload, Mapping):
        return MISSING
    document: Mapping[str, object] = payload  # pyright: ignore[reportUnknownVariableType]
    return document.get(name, MISSING)


@dataclass(frozen=True, slots=True, order=False)
class VersionOrder:
    """Position of one record among all versions of its key.

    Records compare by cursor, then extraction time, then raw id. A ``None`` cursor
    sorts below any concrete cursor value.
    """

    cursor: object | None
    extracted_at: datetime
    raw_id: str

    def sort_key(self) -> tuple[object, ...]:
        return (self.cursor is not None, self.cursor, self.extracted_at, self.raw_id)

    def __lt__(self, other: VersionOrder) -> bool:
        return self.sort_key() < other.sort_key()  # pyright: ignore[reportOperatorIssue]

    def __gt__(self, other: VersionOrder) -> bool:
        return other < self


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One document appended to a stream's raw log."""

    raw_id: str
    payload: Mapping[str, object]
    extracted_at: datetime
    loaded_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.loaded_at is None

    def is_tombstone(self, tombstone_field: str | None) -> bool:
        if tombstone_field is None:
            return False
        return field_value(self.payload, tombstone_field) not in (MISSING, None)


@dataclass(frozen=True, slots=True)
class FieldCastError:
    """A present, non-null raw field that could not be cast to its column type."""

    column: str

    @property
    def message(self) -> str:
        return f"Problem with `{self.column}`"


@dataclass(frozen=True, slots=True)
class TypedRow:
    """Current-state candidate for one key, materialized from one raw record."""

    key: object
    columns: Mapping[str, object]
    cursor: object | None
    source_raw_id: str
    source_extracted_at: datetime
    error_manifest: tuple[FieldCastError, ...] = field(default=())

    @property
    def order(self) -> VersionOrder:
        return VersionOrder(self.cursor, self.source_extracted_at, self.source_raw_id)

    @property
    def error_columns(self) -> tuple[str, ...]:
        return tuple(error.column for error in self.error_manifest)

    @property
    def has_errors(self) -> bool:
        return bool(self.error_manifest)


@dataclass(frozen=True, slots=True)
class RecordVersion:
    """Ordering view of a raw record, used to find each key's latest version."""

    key: object
    order: VersionOrder
    is_tombstone: bool
    is_pending: bool

    @property
    def raw_id(self) -> str:
        return self.order.raw_id
