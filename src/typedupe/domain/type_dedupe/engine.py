"""Orchestrator for one typing and deduplication run of a stream.

The engine composes the validate, materialize and reconcile stages but does not
prescribe adapters; it only needs a unit of work exposing ``StreamRepositories``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from typedupe.domain.casting import DEFAULT_CAST_POLICY, CastPolicy

from .materialize import MaterializeBatch, materialize_batch
from .reconcile import ReconcileBatch, reconcile_batch
from .validate import ValidateBatch, validate_batch

if TYPE_CHECKING:
    from collections.abc import Callable

    from typedupe.domain.ports import StreamUnitOfWork

log = logging.getLogger(__name__)


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class TypeDedupeResult:
    """Outcome of one run; ``committed`` is ``False`` when there was nothing to do."""

    stream: str
    pending: int = 0
    inserted: int = 0
    superseded: int = 0
    tombstoned: int = 0
    compacted: int = 0
    loaded: int = 0
    rows_with_errors: int = 0
    skipped_tombstones: int = 0
    committed: bool = False


@dataclass(slots=True)
class TypeDedupeEngine:
    """Run validate, materialize and reconcile as one atomic unit of work."""

    policy: CastPolicy = DEFAULT_CAST_POLICY
    validate: ValidateBatch = validate_batch
    materialize: MaterializeBatch = materialize_batch
    reconcile: ReconcileBatch = reconcile_batch
    clock: Clock = _utcnow

    def run(self, unit_of_work_factory: Callable[[], StreamUnitOfWork]) -> TypeDedupeResult:
        """Process every pending raw record of the unit of work's stream.

        Any exception propagates out of the ``with`` block, which rolls the whole run
        back: the typed table, the raw log and the watermark stay untouched.
        """

        with unit_of_work_factory() as uow:
            repositories = uow.repositories
            schema = repositories.schema
            repositories.stream_state.claim(schema.name, started_at=self.clock())

            pending = repositories.raw_log.pending()
            result = TypeDedupeResult(stream=schema.name, pending=len(pending))
            if not pending:
                log.info("Stream %s has no pending raw records", schema.name)
                uow.rollback()
                return result

            self.validate(pending, schema=schema, policy=self.policy)
            materialization = self.materialize(pending, schema=schema, policy=self.policy)

            now = self.clock()
            reconciliation = self.reconcile(
                repositories,
                pending=pending,
                materialization=materialization,
                policy=self.policy,
                loaded_at=now,
            )
            repositories.stream_state.record_completion(
                schema.name,
                completed_at=now,
                loaded=reconciliation.loaded,
            )
            uow.commit()

        result.inserted = reconciliation.inserted
        result.superseded = reconciliation.superseded
        result.tombstoned = reconciliation.tombstoned
        result.compacted = reconciliation.compacted
        result.loaded = reconciliation.loaded
        result.rows_with_errors = materialization.rows_with_errors
        result.skipped_tombstones = materialization.skipped_tombstones
        result.committed = True
        return result
