"""Application configuration helpers."""

from __future__ import annotations

from .database import (
    DatabaseConfig,
    DatabaseProvider,
    MigrationConfig,
    config_from_environment,
    get_migration_config,
    load_settings_file,
)
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, UnsupportedProviderError

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "DatabaseProvider",
    "MigrationConfig",
    "MissingConfigurationError",
    "UnsupportedProviderError",
    "config_from_environment",
    "get_migration_config",
    "load_settings_file",
    "require_env_vars",
]
