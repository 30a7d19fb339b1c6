"""Typing and deduplication stages and the engine composing them."""

from __future__ import annotations

from .engine import Clock, TypeDedupeEngine, TypeDedupeResult
from .materialize import (
    MaterializeBatch,
    Materialization,
    cast_field,
    materialize_batch,
    materialize_record,
    record_version,
)
from .reconcile import (
    ReconcileBatch,
    ReconciliationResult,
    latest_versions,
    reconcile_batch,
    select_winners,
)
from .validate import ValidateBatch, ValidationReport, inspect_primary_keys, validate_batch

__all__ = [
    "Clock",
    "MaterializeBatch",
    "Materialization",
    "ReconcileBatch",
    "ReconciliationResult",
    "TypeDedupeEngine",
    "TypeDedupeResult",
    "ValidateBatch",
    "ValidationReport",
    "cast_field",
    "inspect_primary_keys",
    "latest_versions",
    "materialize_batch",
    "materialize_record",
    "reconcile_batch",
    "select_winners",
    "validate_batch",
]
