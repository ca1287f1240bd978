"""Source and target database configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from .env import require_env_vars
from .errors import ConfigurationError, UnsupportedProviderError
from .settings_file import SettingsDocument

if TYPE_CHECKING:
    from pathlib import Path

    from .settings_file import DatabaseSection

SOURCE_PROVIDER_ENV: Final[str] = "SOURCE_DB_PROVIDER"
SOURCE_CONNECTION_ENV: Final[str] = "SOURCE_DB_CONNECTION"
TARGET_PROVIDER_ENV: Final[str] = "TARGET_DB_PROVIDER"
TARGET_CONNECTION_ENV: Final[str] = "TARGET_DB_CONNECTION"


class DatabaseProvider(StrEnum):
    SQLSERVER = "sqlserver"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: str) -> DatabaseProvider:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise UnsupportedProviderError(value) from None


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    provider: DatabaseProvider
    connection_string: str

    @classmethod
    def of(cls, provider: str, connection_string: str) -> DatabaseConfig:
        if not connection_string.strip():
            raise ConfigurationError("Connection string must not be blank")
        return cls(
            provider=DatabaseProvider.parse(provider),
            connection_string=connection_string.strip(),
        )


@dataclass(frozen=True, slots=True)
class MigrationConfig:
    """Connection settings for the legacy (source) and successor (target) stores."""

    source: DatabaseConfig
    target: DatabaseConfig


def get_migration_config(*, path: Path | None = None) -> MigrationConfig:
    """Load the settings file when a path is given, the environment otherwise."""

    if path is not None:
        return load_settings_file(path)
    return config_from_environment()


def load_settings_file(path: Path) -> MigrationConfig:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read settings file {path}: {exc}") from exc
    try:
        document = SettingsDocument.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings file {path}: {exc}") from exc
    return MigrationConfig(
        source=_from_section(document.source_database),
        target=_from_section(document.target_database),
    )


def config_from_environment() -> MigrationConfig:
    values = require_env_vars(
        (SOURCE_PROVIDER_ENV, SOURCE_CONNECTION_ENV, TARGET_PROVIDER_ENV, TARGET_CONNECTION_ENV)
    )
    return MigrationConfig(
        source=DatabaseConfig.of(values[SOURCE_PROVIDER_ENV], values[SOURCE_CONNECTION_ENV]),
        target=DatabaseConfig.of(values[TARGET_PROVIDER_ENV], values[TARGET_CONNECTION_ENV]),
    )


def _from_section(section: DatabaseSection) -> DatabaseConfig:
    return DatabaseConfig.of(section.provider, section.connection_string)
