"""Read configured catalogs from disk."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from typedupe.config.errors import ConfigurationError

from .schema import ConfiguredCatalog
from .translator import translate_catalog

if TYPE_CHECKING:
    from pathlib import Path

    from typedupe.domain.model import StreamSchema

log = logging.getLogger(__name__)


def load_catalog(path: Path) -> ConfiguredCatalog:
    try:
        document = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read catalog {path}: {exc}") from exc
    try:
        return ConfiguredCatalog.model_validate_json(document)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid catalog {path}: {exc}") from exc


def load_stream_schemas(path: Path) -> dict[str, StreamSchema]:
    """Load and translate the catalog at ``path``."""

    schemas = translate_catalog(load_catalog(path))
    log.debug("Loaded %s streams from %s: %s", len(schemas), path, ", ".join(schemas))
    return schemas
