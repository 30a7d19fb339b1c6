"""Behavioural properties of whole runs over in-memory repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from typedupe.domain.type_dedupe import TypeDedupeEngine, TypeDedupeResult

from tests.helpers.streams import FakeStreamUnitOfWork, make_record, user_payload, users_schema

if TYPE_CHECKING:
    from collections.abc import Mapping

T1 = "2020-01-01T00:00:00Z"
T2 = "2020-01-02T00:00:00Z"
T3 = "2020-01-03T00:00:00Z"


def _sync(uow: FakeStreamUnitOfWork, *payloads: Mapping[str, object]) -> TypeDedupeResult:
    uow.raw_log.extend(make_record(payload) for payload in payloads)
    return TypeDedupeEngine().run(lambda: uow)


def _state(uow: FakeStreamUnitOfWork) -> tuple[object, object]:
    rows = sorted(
        ((row.key, row.source_raw_id, tuple(sorted(row.columns.items(), key=str))) for row in uow.typed_table.rows()),
        key=str,
    )
    raw = sorted((record.raw_id, record.loaded_at) for record in uow.raw_log.records.values())
    return rows, raw


def test_second_run_without_new_records_changes_nothing() -> None:
    uow = FakeStreamUnitOfWork(users_schema())
    _sync(uow, user_payload(1, T1), user_payload(1, T2, age=39), user_payload(2, T1))
    before = _state(uow)

    result = TypeDedupeEngine().run(lambda: uow)

    assert not result.committed
    assert _state(uow) == before


@pytest.mark.parametrize("newer_first", [True, False])
def test_arrival_order_does_not_change_the_winner(newer_first: bool) -> None:
    older = user_payload(1, T1, age=38)
    newer = user_payload(1, T2, age=39)
    first, second = (newer, older) if newer_first else (older, newer)
    uow = FakeStreamUnitOfWork(users_schema())

    _sync(uow, first)
    _sync(uow, second)

    (row,) = uow.typed_table.rows()
    assert row.columns["age"] == 39
    assert uow.raw_log.count() == 1


def test_stale_update_after_tombstone_does_not_resurrect() -> None:
    uow = FakeStreamUnitOfWork(users_schema())

    _sync(uow, user_payload(1, T1))
    deleted = _sync(uow, user_payload(1, T3, deleted=True))
    stale = _sync(uow, user_payload(1, T2, age=99))

    assert deleted.tombstoned == 1
    assert stale.compacted == 1
    assert uow.typed_table.rows() == []
    (survivor,) = uow.raw_log.records.values()
    assert survivor.payload["updated_at"] == T3
    assert survivor.is_tombstone("_ab_cdc_deleted_at")
    assert survivor.loaded_at is not None


def test_tombstone_before_create_in_the_same_batch() -> None:
    uow = FakeStreamUnitOfWork(users_schema())

    result = _sync(uow, user_payload(1, T2, deleted=True), user_payload(1, T1))

    assert result.skipped_tombstones == 1
    assert uow.typed_table.rows() == []
    assert uow.raw_log.count() == 1


def test_strictly_newer_record_resurrects_a_deleted_key() -> None:
    uow = FakeStreamUnitOfWork(users_schema())
    _sync(uow, user_payload(1, T1))
    _sync(uow, user_payload(1, T2, deleted=True))

    _sync(uow, user_payload(1, T3, first_name="Evan II"))

    (row,) = uow.typed_table.rows()
    assert row.columns["first_name"] == "Evan II"
    assert uow.raw_log.count() == 1


def test_three_versions_in_one_batch_keep_the_latest() -> None:
    uow = FakeStreamUnitOfWork(users_schema())

    result = _sync(
        uow,
        user_payload(5, "2020-01-03T00:00:01Z", age=40),
        user_payload(5, "2020-01-03T00:00:02Z", age=41),
        user_payload(5, "2020-01-03T00:00:03Z", age=42),
    )

    (row,) = uow.typed_table.rows()
    assert row.columns["age"] == 42
    assert uow.raw_log.count() == 1
    assert result.inserted == 3
    assert result.superseded == 2
    assert result.compacted == 2
    assert result.loaded == 1


def test_missing_cursor_falls_back_to_extraction_order() -> None:
    uow = FakeStreamUnitOfWork(users_schema())

    _sync(uow, user_payload(1, None, age=1))
    _sync(uow, user_payload(1, None, age=2))

    (row,) = uow.typed_table.rows()
    assert row.columns["age"] == 2


def test_null_and_error_are_distinguished() -> None:
    uow = FakeStreamUnitOfWork(users_schema())
    absent = user_payload(4, T1)
    del absent["age"]

    result = _sync(uow, absent, user_payload(3, T1, age="forty"))

    rows = {row.key: row for row in uow.typed_table.rows()}
    assert rows[4].columns["age"] is None
    assert rows[4].error_columns == ()
    assert rows[3].columns["age"] is None
    assert rows[3].error_columns == ("age",)
    assert result.rows_with_errors == 1
