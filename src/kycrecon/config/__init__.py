"""Application configuration helpers."""

from __future__ import annotations

from .env import env_int, env_list, optional_env
from .errors import ConfigurationError
from .logging import configure_logging
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ReconcileConfig",
    "StorageConfig",
    "configure_logging",
    "env_int",
    "env_list",
    "get_database_config",
    "get_database_uri",
    "get_reconcile_config",
    "get_storage_config",
    "optional_env",
]
