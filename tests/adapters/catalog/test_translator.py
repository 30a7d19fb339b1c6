from __future__ import annotations

import pytest

from typedupe.adapters.catalog import (
    ConfiguredCatalog,
    PropertySchema,
    column_type_for,
    select_streams,
    translate_catalog,
)
from typedupe.config import ConfigurationError
from typedupe.domain.model import ColumnType

from tests.helpers.catalog import USERS_STREAM
from tests.helpers.streams import users_schema


@pytest.mark.parametrize(
    ("declaration", "expected"),
    [
        ({"type": "integer"}, ColumnType.INTEGER),
        ({"type": ["integer", "null"]}, ColumnType.INTEGER),
        ({"type": "number"}, ColumnType.NUMBER),
        ({"type": "boolean"}, ColumnType.BOOLEAN),
        ({"type": "string"}, ColumnType.TEXT),
        ({"type": "string", "format": "date-time"}, ColumnType.TIMESTAMP),
        ({"type": "string", "format": "date"}, ColumnType.TIMESTAMP),
        ({"type": "string", "format": "email"}, ColumnType.TEXT),
        ({"type": "array", "items": {"type": "integer"}}, ColumnType.JSON),
        ({"type": "object"}, ColumnType.JSON),
        ({"type": ["string", "integer"]}, ColumnType.JSON),
        ({}, ColumnType.JSON),
    ],
)
def test_column_type_mapping(declaration: dict[str, object], expected: ColumnType) -> None:
    assert column_type_for(PropertySchema.model_validate(declaration)) is expected


def test_catalog_translates_to_stream_schema() -> None:
    catalog = ConfiguredCatalog.model_validate({"streams": [USERS_STREAM]})

    schemas = translate_catalog(catalog)

    assert schemas == {"users": users_schema()}


@pytest.mark.parametrize("primary_key", ["id", ["id"], [["id"]]])
def test_primary_key_spellings(primary_key: object) -> None:
    stream = {**USERS_STREAM, "primary_key": primary_key}

    schemas = translate_catalog(ConfiguredCatalog.model_validate({"streams": [stream]}))

    assert schemas["users"].primary_key == "id"


@pytest.mark.parametrize(
    ("primary_key", "message"),
    [
        ([["id"], ["first_name"]], "composite"),
        ([["address", "city"]], "nested"),
        ([], "composite"),
    ],
)
def test_unsupported_primary_keys(primary_key: object, message: str) -> None:
    stream = {**USERS_STREAM, "primary_key": primary_key}

    with pytest.raises(ConfigurationError, match=message):
        translate_catalog(ConfiguredCatalog.model_validate({"streams": [stream]}))


def test_stream_without_cursor_and_without_tombstones() -> None:
    stream = {**USERS_STREAM, "cursor_field": [], "tombstone_field": None}

    schema = translate_catalog(ConfiguredCatalog.model_validate({"streams": [stream]}))["users"]

    assert schema.cursor is None
    assert schema.tombstone_field is None


def test_invalid_schema_becomes_configuration_error() -> None:
    stream = {**USERS_STREAM, "primary_key": "address"}

    with pytest.raises(ConfigurationError, match="Invalid catalog stream users"):
        translate_catalog(ConfiguredCatalog.model_validate({"streams": [stream]}))


def test_duplicate_stream_names_are_rejected() -> None:
    catalog = ConfiguredCatalog.model_validate({"streams": [USERS_STREAM, USERS_STREAM]})

    with pytest.raises(ConfigurationError, match="more than once"):
        translate_catalog(catalog)


def test_select_streams() -> None:
    schemas = {"users": users_schema()}

    assert select_streams(schemas) == [users_schema()]
    assert select_streams(schemas, ["users"]) == [users_schema()]
    with pytest.raises(ConfigurationError, match="Unknown streams: orders"):
        select_streams(schemas, ["orders"])
