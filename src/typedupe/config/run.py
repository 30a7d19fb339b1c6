"""Defaults for typing and deduplication runs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .env import env_float, require_env_vars
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RunConfig:
    lock_timeout: float | None = None


def get_run_config() -> RunConfig:
    timeout = env_float("TYPEDUPE_LOCK_TIMEOUT", default=None)
    if timeout is not None and timeout < 0:
        raise ConfigurationError("TYPEDUPE_LOCK_TIMEOUT must not be negative")
    return RunConfig(lock_timeout=timeout)


def get_catalog_path(explicit: str | Path | None = None) -> Path:
    """Return the catalog file path, preferring ``explicit`` over ``TYPEDUPE_CATALOG``."""

    if explicit is not None:
        return Path(explicit).expanduser()
    value = require_env_vars(["TYPEDUPE_CATALOG"])["TYPEDUPE_CATALOG"]
    return Path(value.strip()).expanduser()
