"""Safe casts from raw JSON values to column types.

A safe cast never raises: a value that cannot be represented in the target type
yields ``None``. Where the warehouse experiments relied on dialect behaviour
(decimal truncation, integer overflow, no validation inside JSON blobs) the
behaviour is an explicit ``CastPolicy`` knob instead.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import StrEnum
from typing import Final

from typedupe.domain.model import ColumnType

INT64_MIN: Final[int] = -(2**63)
INT64_MAX: Final[int] = 2**63 - 1

_TRUE_LITERALS: Final[frozenset[str]] = frozenset({"t", "true", "y", "yes", "on", "1"})
_FALSE_LITERALS: Final[frozenset[str]] = frozenset({"f", "false", "n", "no", "off", "0"})


class OpaqueValidation(StrEnum):
    """How much a ``json`` column checks the value it stores."""

    STRUCTURED = "structured"  # objects and arrays only
    ANY = "any"  # every non-null JSON value is stored as-is


@dataclass(frozen=True, slots=True)
class CastPolicy:
    """Documented casting limits.

    ``truncate_decimals`` drops the fractional part when a decimal lands in an
    integer column (toward zero). Integers outside ``integer_min``..``integer_max``
    fail the cast. Signed/unsigned distinctions are not enforced.
    """

    truncate_decimals: bool = True
    integer_min: int = INT64_MIN
    integer_max: int = INT64_MAX
    opaque_validation: OpaqueValidation = OpaqueValidation.STRUCTURED

    def __post_init__(self) -> None:
        if self.integer_min > self.integer_max:
            raise ValueError("integer_min must not exceed integer_max")

    @classmethod
    def for_integer_bits(cls, bits: int, **overrides: object) -> CastPolicy:
        if bits < 2:  # noqa: PLR2004
            raise ValueError(f"Integer width must be at least 2 bits, got {bits}")
        bound = 2 ** (bits - 1)
        return cls(integer_min=-bound, integer_max=bound - 1, **overrides)  # pyright: ignore[reportArgumentType]


DEFAULT_CAST_POLICY: Final[CastPolicy] = CastPolicy()


def safe_cast(
    value: object,
    column_type: ColumnType,
    policy: CastPolicy = DEFAULT_CAST_POLICY,
) -> object | None:
    """Cast ``value`` to ``column_type`` or return ``None``."""

    if value is None:
        return None
    caster = _CASTERS[column_type]
    try:
        return caster(value, policy)
    except (ArithmeticError, TypeError, ValueError):
        return None


def _to_decimal(value: object) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int | float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = Decimal(value.strip())
    else:
        return None
    if not result.is_finite():
        return None
    return result


def cast_integer(value: object, policy: CastPolicy) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        result = value
    else:
        try:
            decimal_value = _to_decimal(value)
        except InvalidOperation:
            return None
        if decimal_value is None:
            return None
        integral = decimal_value.to_integral_value(rounding=ROUND_DOWN)
        if integral != decimal_value and not policy.truncate_decimals:
            return None
        if not Decimal(policy.integer_min) <= integral <= Decimal(policy.integer_max):
            return None
        result = int(integral)
    if not policy.integer_min <= result <= policy.integer_max:
        return None
    return result


def cast_number(value: object, policy: CastPolicy) -> Decimal | None:
    _ = policy
    try:
        return _to_decimal(value)
    except InvalidOperation:
        return None


def cast_boolean(value: object, policy: CastPolicy) -> bool | None:
    _ = policy
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return {0: False, 1: True}.get(value)
    if isinstance(value, str):
        literal = value.strip().lower()
        if literal in _TRUE_LITERALS:
            return True
        if literal in _FALSE_LITERALS:
            return False
    return None


def cast_text(value: object, policy: CastPolicy) -> str | None:
    _ = policy
    if isinstance(value, str):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return json.dumps(value, separators=(",", ":"), default=str)


def cast_timestamp(value: object, policy: CastPolicy) -> datetime | None:
    _ = policy
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)  # noqa: DTZ001
    elif isinstance(value, str):
        normalized = value.strip()
        if normalized.endswith(("Z", "z")):
            normalized = normalized[:-1] + "+00:00"
        parsed = datetime.fromisoformat(normalized)
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def cast_json(value: object, policy: CastPolicy) -> object | None:
    if policy.opaque_validation is OpaqueValidation.ANY:
        return value
    if isinstance(value, Mapping | list):
        return value
    return None


_CASTERS: Final[Mapping[ColumnType, Callable[[object, CastPolicy], object | None]]] = {
    ColumnType.INTEGER: cast_integer,
    ColumnType.NUMBER: cast_number,
    ColumnType.BOOLEAN: cast_boolean,
    ColumnType.TEXT: cast_text,
    ColumnType.TIMESTAMP: cast_timestamp,
    ColumnType.JSON: cast_json,
}
