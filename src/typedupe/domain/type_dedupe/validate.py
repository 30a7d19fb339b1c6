"""Validator stage: refuse batches whose records cannot be addressed by key."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from typedupe.domain.casting import DEFAULT_CAST_POLICY, CastPolicy, safe_cast
from typedupe.domain.errors import MissingPrimaryKeyError
from typedupe.domain.model import MISSING, field_value

if TYPE_CHECKING:
    from collections.abc import Iterable

    from typedupe.domain.model import RawRecord, StreamSchema

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Primary-key health of a batch of pending records."""

    checked: int
    absent: int = 0
    uncastable: int = 0
    offending_raw_ids: tuple[str, ...] = ()

    @property
    def missing(self) -> int:
        return self.absent + self.uncastable

    @property
    def ok(self) -> bool:
        return self.missing == 0


class ValidateBatch(Protocol):
    """Check pending records before any mutation happens."""

    def __call__(
        self,
        records: Iterable[RawRecord],
        *,
        schema: StreamSchema,
        policy: CastPolicy,
    ) -> ValidationReport: ...


def inspect_primary_keys(
    records: Iterable[RawRecord],
    *,
    schema: StreamSchema,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> ValidationReport:
    """Count records with an absent/null key and records with an uncastable key."""

    key_column = schema.key_column
    checked = absent = uncastable = 0
    offending: list[str] = []
    for record in records:
        checked += 1
        raw_key = field_value(record.payload, key_column.name)
        if raw_key is MISSING or raw_key is None:
            absent += 1
            offending.append(record.raw_id)
        elif safe_cast(raw_key, key_column.type, policy) is None:
            uncastable += 1
            offending.append(record.raw_id)
    return ValidationReport(
        checked=checked,
        absent=absent,
        uncastable=uncastable,
        offending_raw_ids=tuple(offending),
    )


def validate_batch(
    records: Iterable[RawRecord],
    *,
    schema: StreamSchema,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> ValidationReport:
    """Raise ``MissingPrimaryKeyError`` unless every record has a castable key."""

    report = inspect_primary_keys(records, schema=schema, policy=policy)
    if not report.ok:
        log.warning(
            "Rejecting batch for %s: %s of %s pending records lack a usable %s",
            schema.name,
            report.missing,
            report.checked,
            schema.primary_key,
        )
        raise MissingPrimaryKeyError(
            stream=schema.name,
            absent=report.absent,
            uncastable=report.uncastable,
            raw_ids=report.offending_raw_ids,
        )
    return report
