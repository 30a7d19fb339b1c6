from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from typedupe.domain.errors import MissingPrimaryKeyError
from typedupe.domain.type_dedupe import (
    Materialization,
    ReconciliationResult,
    TypeDedupeEngine,
    ValidationReport,
)

from tests.helpers.streams import FakeStreamUnitOfWork, make_record, user_payload, users_schema

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from typedupe.domain.casting import CastPolicy
    from typedupe.domain.model import RawRecord, StreamSchema
    from typedupe.domain.ports import StreamRepositories

NOW = datetime(2024, 6, 1, tzinfo=UTC)


def _clock() -> datetime:
    return NOW


def test_engine_runs_stages_in_order_and_commits() -> None:
    observed: list[str] = []
    materialization = Materialization(skipped_tombstones=2)

    class _Validator:
        def __call__(
            self, records: Iterable[RawRecord], *, schema: StreamSchema, policy: CastPolicy
        ) -> ValidationReport:
            observed.append("validate")
            return ValidationReport(checked=len(list(records)))

    class _Materializer:
        def __call__(
            self, records: Iterable[RawRecord], *, schema: StreamSchema, policy: CastPolicy
        ) -> Materialization:
            observed.append("materialize")
            return materialization

    class _Reconciler:
        def __call__(
            self,
            repositories: StreamRepositories,
            *,
            pending: Sequence[RawRecord],
            materialization: Materialization,
            policy: CastPolicy,
            loaded_at: datetime,
        ) -> ReconciliationResult:
            observed.append("reconcile")
            assert loaded_at == NOW
            return ReconciliationResult(inserted=3, compacted=1, loaded=3)

    uow = FakeStreamUnitOfWork(users_schema())
    uow.raw_log.extend(make_record(user_payload(key, None)) for key in (1, 2, 3))
    engine = TypeDedupeEngine(
        validate=_Validator(),
        materialize=_Materializer(),
        reconcile=_Reconciler(),
        clock=_clock,
    )

    result = engine.run(lambda: uow)

    assert observed == ["validate", "materialize", "reconcile"]
    assert uow.committed
    assert result.committed
    assert result.pending == 3
    assert result.inserted == 3
    assert result.compacted == 1
    assert result.skipped_tombstones == 2
    state = uow.repositories.stream_state.get("users")
    assert state is not None
    assert state.runs_completed == 1
    assert state.last_loaded_count == 3
    assert state.last_completed_at == NOW


def test_engine_without_pending_records_is_a_no_op() -> None:
    uow = FakeStreamUnitOfWork(users_schema())
    uow.raw_log.add(make_record(user_payload(1, None), loaded_at=NOW))

    result = TypeDedupeEngine(clock=_clock).run(lambda: uow)

    assert not result.committed
    assert result.pending == 0
    assert not uow.committed
    assert uow.rolled_back


def test_validation_failure_stops_before_any_write() -> None:
    observed: list[str] = []

    class _Materializer:
        def __call__(
            self, records: Iterable[RawRecord], *, schema: StreamSchema, policy: CastPolicy
        ) -> Materialization:
            observed.append("materialize")
            return Materialization()

    uow = FakeStreamUnitOfWork(users_schema())
    uow.raw_log.extend([make_record(user_payload(1, None)), make_record({"first_name": "NoKey"})])

    with pytest.raises(MissingPrimaryKeyError):
        TypeDedupeEngine(materialize=_Materializer(), clock=_clock).run(lambda: uow)

    assert observed == []
    assert uow.rolled_back
    assert not uow.committed
    assert uow.typed_table.rows() == []
    assert len(uow.raw_log.pending()) == 2
