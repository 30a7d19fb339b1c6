"""Failure taxonomy of the typing and deduplication engine.

Per-field cast problems are not exceptions: they are recorded as
``typedupe.domain.model.FieldCastError`` entries on the affected row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class TypeDedupeError(RuntimeError):
    """Base class for failures of one typing and deduplication run."""


class MissingPrimaryKeyError(TypeDedupeError):
    """Raised when pending raw records cannot be addressed by primary key.

    Nothing has been written when this is raised; the batch is retried unchanged by
    the next invocation.
    """

    def __init__(
        self,
        *,
        stream: str,
        absent: int,
        uncastable: int,
        raw_ids: Sequence[str] = (),
    ) -> None:
        self.stream = stream
        self.absent = absent
        self.uncastable = uncastable
        self.raw_ids = tuple(raw_ids)
        super().__init__(
            f"Stream {stream} has {absent + uncastable} pending records missing a primary key "
            f"(absent={absent}, uncastable={uncastable})"
        )

    @property
    def count(self) -> int:
        return self.absent + self.uncastable


class ReconciliationInvariantViolation(TypeDedupeError):  # noqa: N818
    """Raised when reconciliation would leave the typed table inconsistent.

    Always a defect in ordering or casting logic, never a data condition.
    """

    def __init__(self, message: str, *, stream: str, keys: Sequence[object] = ()) -> None:
        self.stream = stream
        self.keys = tuple(keys)
        super().__init__(f"{stream}: {message}")


class StorageFailure(TypeDedupeError):  # noqa: N818
    """Raised when the underlying store fails; the run is safe to retry."""

    def __init__(self, message: str, *, stream: str | None = None) -> None:
        self.stream = stream
        super().__init__(message)


class StreamBusyError(TypeDedupeError):
    """Raised when another run holds the stream lock past the configured timeout."""

    def __init__(self, stream: str, *, timeout: float | None) -> None:
        self.stream = stream
        self.timeout = timeout
        super().__init__(f"Stream {stream} is locked by another run (timeout={timeout}s)")
