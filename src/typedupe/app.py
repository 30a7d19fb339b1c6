"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from typedupe.adapters.sqlalchemy import (
    SqlAlchemyStreamUnitOfWork,
    is_started,
    prepare_raw_table as provision_raw_table,
    prepare_typed_table as provision_typed_table,
    require_engine,
    startup,
)
from typedupe.config import get_cast_policy, get_run_config, get_table_naming
from typedupe.domain.concurrency import STREAM_LOCKS, StreamLockRegistry
from typedupe.domain.errors import StorageFailure
from typedupe.domain.model import RawRecord, new_raw_id
from typedupe.domain.ports.unit_of_work import StreamUnitOfWork
from typedupe.domain.type_dedupe import TypeDedupeEngine, TypeDedupeResult

if TYPE_CHECKING:
    from typedupe.adapters.sqlalchemy import StreamTables
    from typedupe.config import RunConfig, TableNaming
    from typedupe.domain.casting import CastPolicy
    from typedupe.domain.model import StreamSchema

UnitOfWorkFactory = Callable[[], StreamUnitOfWork]

log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def prepare_raw_table(schema: StreamSchema, *, naming: TableNaming | None = None) -> StreamTables:
    """Provision the raw log of ``schema``; safe to call repeatedly."""

    _ensure_started()
    try:
        return provision_raw_table(require_engine(), schema, naming or get_table_naming())
    except SQLAlchemyError as exc:
        raise StorageFailure(f"Preparing raw table failed: {exc}", stream=schema.name) from exc


def prepare_stream(schema: StreamSchema, *, naming: TableNaming | None = None) -> StreamTables:
    """Provision the raw log and the typed table of ``schema``."""

    _ensure_started()
    effective_naming = naming or get_table_naming()
    try:
        provision_raw_table(require_engine(), schema, effective_naming)
        return provision_typed_table(require_engine(), schema, effective_naming)
    except SQLAlchemyError as exc:
        raise StorageFailure(f"Preparing stream failed: {exc}", stream=schema.name) from exc


def ingest_records(
    schema: StreamSchema,
    payloads: Iterable[Mapping[str, object]],
    *,
    extracted_at: datetime | None = None,
    naming: TableNaming | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[str]:
    """Append ``payloads`` to the stream's raw log and return the new raw ids.

    Records are stamped one microsecond apart in payload order, so a later payload
    outranks an earlier one whenever their cursors tie.
    """

    if unit_of_work_factory is None:
        _ensure_started()
    captured_at = extracted_at or datetime.now(UTC)
    records = [
        RawRecord(
            raw_id=new_raw_id(),
            payload=payload,
            extracted_at=captured_at + timedelta(microseconds=index),
        )
        for index, payload in enumerate(payloads)
    ]
    effective_uow = unit_of_work_factory or (lambda: SqlAlchemyStreamUnitOfWork(schema, naming))

    try:
        with effective_uow() as uow:
            appended = uow.repositories.raw_log.extend(records)
            uow.commit()
    except SQLAlchemyError as exc:
        raise StorageFailure(f"Appending raw records failed: {exc}", stream=schema.name) from exc

    log.info(f"Appended {appended} raw records to {schema.name}")
    return [record.raw_id for record in records]


def type_and_dedupe(
    schema: StreamSchema,
    *,
    naming: TableNaming | None = None,
    policy: CastPolicy | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    engine: TypeDedupeEngine | None = None,
    locks: StreamLockRegistry = STREAM_LOCKS,
    run_config: RunConfig | None = None,
) -> TypeDedupeResult:
    """Run one typing and deduplication unit of work for ``schema``."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_engine = engine or TypeDedupeEngine(policy=policy or get_cast_policy())
    effective_uow = unit_of_work_factory or (lambda: SqlAlchemyStreamUnitOfWork(schema, naming))
    timeout = (run_config or get_run_config()).lock_timeout
    log.info("Starting type and dedupe: stream=%s", schema.name)

    with locks.hold(schema.name, timeout=timeout):
        try:
            result = effective_engine.run(effective_uow)
        except SQLAlchemyError as exc:
            raise StorageFailure(
                f"Type and dedupe of {schema.name} failed in storage: {exc}",
                stream=schema.name,
            ) from exc

    log.info(
        f"Finished type and dedupe of {result.stream}: pending={result.pending}, "
        f"inserted={result.inserted}, superseded={result.superseded}, "
        f"tombstoned={result.tombstoned}, compacted={result.compacted}, "
        f"loaded={result.loaded}, rows_with_errors={result.rows_with_errors}, "
        f"committed={result.committed}"
    )
    return result
