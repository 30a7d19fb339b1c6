"""Ports for the raw log, the typed table and stream bookkeeping."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from typedupe.domain.model import RawRecord, TypedRow

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator
    from datetime import datetime

    from typedupe.domain.model import StreamState


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for an append-capable store."""

    def add(self, entity: TEntity) -> None: ...

    def extend(self, entities: Iterable[TEntity]) -> int: ...


@runtime_checkable
class RawLogRepository(Repository[RawRecord], Protocol):
    """Append-only raw log of one stream."""

    def pending(self) -> list[RawRecord]:
        """Return every record whose ``loaded_at`` is still unset."""
        ...

    def scan(self) -> Iterator[RawRecord]:
        """Iterate the whole raw log (full scan)."""
        ...

    def delete(self, raw_ids: Collection[str]) -> int: ...

    def mark_loaded(self, raw_ids: Collection[str], *, loaded_at: datetime) -> int:
        """Set ``loaded_at`` on the given records that are still pending."""
        ...

    def count(self) -> int: ...


@runtime_checkable
class TypedTableRepository(Repository[TypedRow], Protocol):
    """Typed, deduplicated current-state table of one stream."""

    def get(self, key: object) -> TypedRow | None: ...

    def rows(self) -> list[TypedRow]: ...

    def rows_for_keys(self, keys: Collection[object]) -> list[TypedRow]: ...

    def duplicate_keys(self) -> list[object]:
        """Return keys currently held by more than one row."""
        ...

    def delete_by_raw_ids(self, raw_ids: Collection[str]) -> int: ...

    def delete_keys(self, keys: Collection[object]) -> int: ...


@runtime_checkable
class StreamStateRepository(Protocol):
    """Per-stream bookkeeping; claiming a stream serializes runs across processes."""

    def get(self, stream_name: str) -> StreamState | None: ...

    def claim(self, stream_name: str, *, started_at: datetime) -> StreamState: ...

    def record_completion(
        self,
        stream_name: str,
        *,
        completed_at: datetime,
        loaded: int,
    ) -> StreamState: ...
