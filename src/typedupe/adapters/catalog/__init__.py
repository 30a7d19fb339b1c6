"""Configured-catalog adapter: JSON stream descriptions to schema descriptors."""

from __future__ import annotations

from .loader import load_catalog, load_stream_schemas
from .schema import ConfiguredCatalog, ConfiguredStream, PropertySchema, StreamJsonSchema
from .translator import column_type_for, select_streams, translate_catalog, translate_stream

__all__ = [
    "ConfiguredCatalog",
    "ConfiguredStream",
    "PropertySchema",
    "StreamJsonSchema",
    "column_type_for",
    "load_catalog",
    "load_stream_schemas",
    "select_streams",
    "translate_catalog",
    "translate_stream",
]
