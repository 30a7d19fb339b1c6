from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from typedupe.domain.casting import (
    DEFAULT_CAST_POLICY,
    INT64_MAX,
    INT64_MIN,
    CastPolicy,
    OpaqueValidation,
    safe_cast,
)
from typedupe.domain.model import ColumnType


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (42, 42),
        (-23, -23),
        ("17", 17),
        (0.9, 0),
        (-1.7, -1),
        ("12.5", 12),
        (INT64_MAX, INT64_MAX),
        (INT64_MIN, INT64_MIN),
    ],
)
def test_integer_cast_accepts_and_truncates(raw: object, expected: int) -> None:
    assert safe_cast(raw, ColumnType.INTEGER) == expected


@pytest.mark.parametrize(
    "raw",
    [
        True,
        "forty",
        "",
        {"nested": 1},
        [1],
        INT64_MAX + 1,
        "9223372036854775808",
        float("inf"),
        "NaN",
    ],
)
def test_integer_cast_failures_return_none(raw: object) -> None:
    assert safe_cast(raw, ColumnType.INTEGER) is None


def test_integer_cast_without_truncation_rejects_fractions() -> None:
    policy = CastPolicy(truncate_decimals=False)

    assert safe_cast(0.9, ColumnType.INTEGER, policy) is None
    assert safe_cast("3.0", ColumnType.INTEGER, policy) == 3


def test_integer_width_policy() -> None:
    policy = CastPolicy.for_integer_bits(32)

    assert safe_cast(2**31 - 1, ColumnType.INTEGER, policy) == 2**31 - 1
    assert safe_cast(2**31, ColumnType.INTEGER, policy) is None
    assert safe_cast(-(2**31), ColumnType.INTEGER, policy) == -(2**31)


def test_cast_policy_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError, match="integer_min"):
        CastPolicy(integer_min=10, integer_max=0)


def test_number_cast_yields_finite_decimals() -> None:
    assert safe_cast(1.5, ColumnType.NUMBER) == Decimal("1.5")
    assert safe_cast("2.25", ColumnType.NUMBER) == Decimal("2.25")
    assert safe_cast(7, ColumnType.NUMBER) == Decimal(7)
    assert safe_cast("Infinity", ColumnType.NUMBER) is None
    assert safe_cast("abc", ColumnType.NUMBER) is None
    assert safe_cast(False, ColumnType.NUMBER) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (True, True),
        (False, False),
        (1, True),
        (0, False),
        ("t", True),
        ("YES", True),
        ("on", True),
        ("f", False),
        ("no", False),
        (" off ", False),
        (2, None),
        ("maybe", None),
        (1.0, None),
    ],
)
def test_boolean_cast(raw: object, expected: bool | None) -> None:
    assert safe_cast(raw, ColumnType.BOOLEAN) is expected


def test_text_cast_renders_json_form() -> None:
    assert safe_cast("Evan", ColumnType.TEXT) == "Evan"
    assert safe_cast(True, ColumnType.TEXT) == "true"
    assert safe_cast(1.5, ColumnType.TEXT) == "1.5"
    assert safe_cast({"city": "SF", "zip": "94001"}, ColumnType.TEXT) == '{"city":"SF","zip":"94001"}'
    assert safe_cast([1, 2], ColumnType.TEXT) == "[1,2]"


def test_timestamp_cast_normalizes_to_utc() -> None:
    assert safe_cast("2020-01-01T00:00:00Z", ColumnType.TIMESTAMP) == datetime(2020, 1, 1, tzinfo=UTC)
    assert safe_cast("2020-01-01T03:00:00+03:00", ColumnType.TIMESTAMP) == datetime(
        2020, 1, 1, tzinfo=UTC
    )
    assert safe_cast("2020-01-01", ColumnType.TIMESTAMP) == datetime(2020, 1, 1, tzinfo=UTC)
    assert safe_cast(date(2021, 5, 4), ColumnType.TIMESTAMP) == datetime(2021, 5, 4, tzinfo=UTC)

    offset = timezone(timedelta(hours=-2))
    converted = safe_cast(datetime(2020, 1, 1, 22, tzinfo=offset), ColumnType.TIMESTAMP)
    assert converted == datetime(2020, 1, 2, 0, tzinfo=UTC)
    assert isinstance(converted, datetime)
    assert converted.tzinfo is UTC


@pytest.mark.parametrize("raw", ["-2020-01-01", "not a date", 1577836800, True, {"at": "x"}])
def test_timestamp_cast_failures(raw: object) -> None:
    assert safe_cast(raw, ColumnType.TIMESTAMP) is None


def test_json_cast_structured_policy() -> None:
    assert safe_cast({"city": "SF"}, ColumnType.JSON) == {"city": "SF"}
    assert safe_cast([1, 2], ColumnType.JSON) == [1, 2]
    assert safe_cast("San Francisco", ColumnType.JSON) is None
    assert safe_cast(12, ColumnType.JSON) is None


def test_json_cast_any_policy_accepts_scalars() -> None:
    policy = CastPolicy(opaque_validation=OpaqueValidation.ANY)

    assert safe_cast("San Francisco", ColumnType.JSON, policy) == "San Francisco"
    assert safe_cast(12, ColumnType.JSON, policy) == 12


def test_none_is_never_an_error() -> None:
    for column_type in ColumnType:
        assert safe_cast(None, column_type, DEFAULT_CAST_POLICY) is None
