"""Application configuration helpers."""

from __future__ import annotations

from .casting import get_cast_policy
from .env import env_bool, env_float, env_int, optional_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .run import RunConfig, get_catalog_path, get_run_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    TableNaming,
    get_database_config,
    get_storage_config,
    get_table_naming,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RunConfig",
    "StorageConfig",
    "TableNaming",
    "configure_logging",
    "env_bool",
    "env_float",
    "env_int",
    "get_cast_policy",
    "get_catalog_path",
    "get_database_config",
    "get_run_config",
    "get_storage_config",
    "get_table_naming",
    "optional_env",
    "require_env_vars",
]
