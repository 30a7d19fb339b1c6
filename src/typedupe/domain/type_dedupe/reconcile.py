"""Reconciler stage: fold candidates into the typed table and compact the raw log.

Runs inside the caller's transaction. Steps, in order:

1. insert every candidate row (keys may be duplicated transiently);
2. keep, per duplicated key, the row built from the key's greatest raw version;
3. delete the typed row of every key whose greatest raw version is a tombstone;
4. delete every scanned raw record that is not its key's greatest version;
5. check that touched keys ended up with the row of their greatest version;
6. advance the watermark on the surviving pending records.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from typedupe.domain.errors import ReconciliationInvariantViolation

from .materialize import record_version

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from typedupe.domain.casting import CastPolicy
    from typedupe.domain.model import RawRecord, RecordVersion, StreamSchema, TypedRow
    from typedupe.domain.ports import StreamRepositories, TypedTableRepository

    from .materialize import Materialization

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationResult:
    inserted: int = 0
    superseded: int = 0
    tombstoned: int = 0
    compacted: int = 0
    loaded: int = 0


class ReconcileBatch(Protocol):
    """Apply a materialized batch to the stream's typed table and raw log."""

    def __call__(
        self,
        repositories: StreamRepositories,
        *,
        pending: Sequence[RawRecord],
        materialization: Materialization,
        policy: CastPolicy,
        loaded_at: datetime,
    ) -> ReconciliationResult: ...


def select_winners(rows: Iterable[TypedRow], *, stream: str) -> tuple[dict[object, TypedRow], list[TypedRow]]:
    """Split ``rows`` into the greatest-ordered row per key and the rows it supersedes."""

    winners: dict[object, TypedRow] = {}
    losers: list[TypedRow] = []
    for row in rows:
        current = winners.get(row.key)
        if current is None:
            winners[row.key] = row
            continue
        if _is_newer(row.order, current.order, stream=stream, key=row.key):
            winners[row.key] = row
            losers.append(current)
        else:
            losers.append(row)
    return winners, losers


def latest_versions(versions: Iterable[RecordVersion], *, stream: str) -> dict[object, RecordVersion]:
    """Return the greatest version of every key."""

    latest: dict[object, RecordVersion] = {}
    for version in versions:
        current = latest.get(version.key)
        if current is None or _is_newer(version.order, current.order, stream=stream, key=version.key):
            latest[version.key] = version
    return latest


def reconcile_batch(
    repositories: StreamRepositories,
    *,
    pending: Sequence[RawRecord],
    materialization: Materialization,
    policy: CastPolicy,
    loaded_at: datetime,
) -> ReconciliationResult:
    schema = repositories.schema
    typed_table = repositories.typed_table
    raw_log = repositories.raw_log
    result = ReconciliationResult()

    result.inserted = typed_table.extend(materialization.rows)

    pending_ids = {record.raw_id for record in pending}
    versions = _scan_versions(repositories, schema=schema, policy=policy, pending_ids=pending_ids)
    latest = latest_versions(versions, stream=schema.name)

    result.superseded = _resolve_duplicate_keys(typed_table, latest, stream=schema.name)

    tombstoned_keys = [key for key, version in latest.items() if version.is_tombstone]
    result.tombstoned = typed_table.delete_keys(tombstoned_keys)

    superseded_raw_ids = {
        version.raw_id for version in versions if latest[version.key].raw_id != version.raw_id
    }
    result.compacted = raw_log.delete(superseded_raw_ids)

    touched_keys = {version.key for version in versions if version.is_pending}
    _check_post_conditions(typed_table, latest, touched_keys, stream=schema.name)

    surviving_pending = sorted(pending_ids - superseded_raw_ids)
    result.loaded = raw_log.mark_loaded(surviving_pending, loaded_at=loaded_at)

    log.debug(
        "Reconciled %s: inserted=%s superseded=%s tombstoned=%s compacted=%s loaded=%s",
        schema.name,
        result.inserted,
        result.superseded,
        result.tombstoned,
        result.compacted,
        result.loaded,
    )
    return result


def _is_newer(candidate: object, current: object, *, stream: str, key: object) -> bool:
    try:
        return candidate > current  # pyright: ignore[reportOperatorIssue]
    except TypeError as exc:
        raise ReconciliationInvariantViolation(
            f"versions of key {key!r} are not comparable: {exc}",
            stream=stream,
            keys=(key,),
        ) from exc


def _resolve_duplicate_keys(
    typed_table: TypedTableRepository,
    latest: dict[object, RecordVersion],
    *,
    stream: str,
) -> int:
    duplicate_keys = typed_table.duplicate_keys()
    if not duplicate_keys:
        return 0

    rows_by_key: defaultdict[object, list[TypedRow]] = defaultdict(list)
    for row in typed_table.rows_for_keys(duplicate_keys):
        rows_by_key[row.key].append(row)

    # stored cursors may be rounded by the column type; raw payloads are exact
    losers: list[TypedRow] = []
    for key, rows in rows_by_key.items():
        version = latest.get(key)
        if version is not None and not version.is_tombstone:
            if any(row.source_raw_id == version.raw_id for row in rows):
                losers.extend(row for row in rows if row.source_raw_id != version.raw_id)
                continue
        _, dropped = select_winners(rows, stream=stream)
        losers.extend(dropped)
    removed = typed_table.delete_by_raw_ids([row.source_raw_id for row in losers])

    remaining = typed_table.duplicate_keys()
    if remaining:
        raise ReconciliationInvariantViolation(
            f"{len(remaining)} keys still hold more than one typed row",
            stream=stream,
            keys=remaining,
        )
    return removed


def _scan_versions(
    repositories: StreamRepositories,
    *,
    schema: StreamSchema,
    policy: CastPolicy,
    pending_ids: set[str],
) -> list[RecordVersion]:
    versions: list[RecordVersion] = []
    skipped = 0
    for record in repositories.raw_log.scan():
        # appended after the pending read; left for the next run
        if record.is_pending and record.raw_id not in pending_ids:
            skipped += 1
            continue
        version = record_version(record, schema=schema, policy=policy)
        if version is None:
            raise ReconciliationInvariantViolation(
                f"raw record {record.raw_id} has no castable {schema.primary_key}",
                stream=schema.name,
            )
        versions.append(version)
    if skipped:
        log.debug("Ignored %s raw records of %s appended during this run", skipped, schema.name)
    return versions


def _check_post_conditions(
    typed_table: TypedTableRepository,
    latest: dict[object, RecordVersion],
    touched_keys: set[object],
    *,
    stream: str,
) -> None:
    if not touched_keys:
        return

    rows_by_key: defaultdict[object, list[TypedRow]] = defaultdict(list)
    for row in typed_table.rows_for_keys(touched_keys):
        rows_by_key[row.key].append(row)

    broken: list[object] = []
    for key in touched_keys:
        version = latest[key]
        rows = rows_by_key.get(key, [])
        if version.is_tombstone:
            if rows:
                broken.append(key)
        elif len(rows) != 1 or rows[0].source_raw_id != version.raw_id:
            broken.append(key)

    if broken:
        raise ReconciliationInvariantViolation(
            f"{len(broken)} keys do not reflect their latest raw record",
            stream=stream,
            keys=broken,
        )
