"""Translate configured-catalog streams into stream schema descriptors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from typedupe.config.errors import ConfigurationError
from typedupe.domain.model import ColumnSpec, ColumnType, InvalidSchemaError, StreamSchema

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .schema import ConfiguredCatalog, ConfiguredStream, PropertySchema

_SIMPLE_TYPES: dict[str, ColumnType] = {
    "integer": ColumnType.INTEGER,
    "number": ColumnType.NUMBER,
    "boolean": ColumnType.BOOLEAN,
    "string": ColumnType.TEXT,
    "object": ColumnType.JSON,
    "array": ColumnType.JSON,
}

_TIMESTAMP_FORMATS = frozenset({"date-time", "date"})


def column_type_for(property_schema: PropertySchema) -> ColumnType:
    """Map a JSON-Schema property to a column type.

    ``null`` members of a type union are ignored; unions of several other types and
    properties without a type are stored as opaque JSON.
    """

    declared = property_schema.type
    if declared is None:
        return ColumnType.JSON
    members = [declared] if isinstance(declared, str) else list(declared)
    non_null = [member for member in members if member != "null"]
    if len(non_null) != 1:
        return ColumnType.JSON

    json_type = non_null[0]
    if json_type == "string" and property_schema.format in _TIMESTAMP_FORMATS:
        return ColumnType.TIMESTAMP
    return _SIMPLE_TYPES.get(json_type, ColumnType.JSON)


def _single_field(stream: str, label: str, path: object) -> str:
    if isinstance(path, str):
        return path
    paths: list[object] = list(path) if isinstance(path, list) else [path]  # pyright: ignore[reportUnknownArgumentType]
    if paths and all(isinstance(item, str) for item in paths):
        # ["id"] is a single top-level field path
        paths = [paths]
    if len(paths) != 1:
        raise ConfigurationError(
            f"Stream {stream} declares a composite {label} ({len(paths)} fields); "
            "only single-column keys are supported"
        )
    field_path = paths[0]
    if not isinstance(field_path, list) or len(field_path) != 1:  # pyright: ignore[reportUnknownArgumentType]
        raise ConfigurationError(
            f"Stream {stream} declares a nested {label} {field_path!r}; "
            "only top-level fields are supported"
        )
    return str(field_path[0])  # pyright: ignore[reportUnknownArgumentType]


def translate_stream(stream: ConfiguredStream) -> StreamSchema:
    columns = tuple(
        ColumnSpec(name, column_type_for(property_schema))
        for name, property_schema in stream.json_schema.properties.items()
    )
    primary_key = _single_field(stream.name, "primary key", stream.primary_key)
    cursor = (
        None
        if stream.cursor_field in (None, [], "")
        else _single_field(stream.name, "cursor field", stream.cursor_field)
    )
    try:
        return StreamSchema(
            name=stream.name,
            columns=columns,
            primary_key=primary_key,
            cursor=cursor,
            tombstone_field=stream.tombstone_field,
        )
    except InvalidSchemaError as exc:
        raise ConfigurationError(f"Invalid catalog stream {stream.name}: {exc}") from exc


def translate_catalog(catalog: ConfiguredCatalog) -> dict[str, StreamSchema]:
    """Return the catalog's schemas keyed by stream name, in catalog order."""

    schemas: dict[str, StreamSchema] = {}
    for stream in catalog.streams:
        if stream.name in schemas:
            raise ConfigurationError(f"Stream {stream.name} is declared more than once")
        schemas[stream.name] = translate_stream(stream)
    return schemas


def select_streams(
    schemas: Mapping[str, StreamSchema],
    names: Iterable[str] | None = None,
) -> list[StreamSchema]:
    """Pick ``names`` from ``schemas`` (all of them when ``names`` is empty or ``None``)."""

    wanted = list(names or ())
    if not wanted:
        return list(schemas.values())
    unknown = [name for name in wanted if name not in schemas]
    if unknown:
        raise ConfigurationError(f"Unknown streams: {', '.join(unknown)}")
    return [schemas[name] for name in wanted]
