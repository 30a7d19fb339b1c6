"""Configured-catalog document schemas.

A catalog lists the streams to type and deduplicate with their JSON-Schema
property types, primary key, cursor field and tombstone field::

    {"streams": [{"name": "users",
                  "json_schema": {"type": "object", "properties": {...}},
                  "primary_key": [["id"]],
                  "cursor_field": ["updated_at"]}]}
"""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from typedupe.domain.model import DEFAULT_TOMBSTONE_FIELD

log = logging.getLogger(__name__)

type TypeDeclaration = str | list[str] | None
type FieldPath = str | list[str]


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Catalog %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class PropertySchema(BaseModel):
    """JSON-Schema of one stream property; annotations beyond the type are ignored."""

    model_config = ConfigDict(extra="ignore")

    type: TypeDeclaration = None
    format: str | None = None


class StreamJsonSchema(CatalogBaseModel):
    type: TypeDeclaration = "object"
    properties: dict[str, PropertySchema] = Field(default_factory=dict[str, PropertySchema])


class ConfiguredStream(CatalogBaseModel):
    name: str
    json_schema: StreamJsonSchema
    primary_key: FieldPath | list[list[str]]
    cursor_field: FieldPath | None = None
    tombstone_field: str | None = DEFAULT_TOMBSTONE_FIELD


class ConfiguredCatalog(CatalogBaseModel):
    streams: list[ConfiguredStream]
