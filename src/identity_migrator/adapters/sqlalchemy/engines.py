"""Engine construction per configured database provider."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Final
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from identity_migrator.adapters.sqlalchemy.mappings import SCHEMAS
from identity_migrator.config import ConfigurationError, DatabaseProvider

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import URL, Engine

    from identity_migrator.config import DatabaseConfig

BACKEND_BY_PROVIDER: Final[Mapping[DatabaseProvider, str]] = MappingProxyType(
    {
        DatabaseProvider.SQLSERVER: "mssql",
        DatabaseProvider.POSTGRESQL: "postgresql",
        DatabaseProvider.MYSQL: "mysql",
        DatabaseProvider.SQLITE: "sqlite",
    }
)


def database_url(config: DatabaseConfig) -> URL:
    """Return the SQLAlchemy URL for a configured store.

    SQL Server also accepts a raw ODBC connection string, which is passed
    through pyodbc untouched.
    """

    raw = config.connection_string
    if config.provider is DatabaseProvider.SQLSERVER and "://" not in raw:
        raw = f"mssql+pyodbc:///?odbc_connect={quote_plus(raw)}"
    try:
        url = make_url(raw)
    except ArgumentError as exc:
        raise ConfigurationError(f"Invalid {config.provider} connection string: {exc}") from exc

    expected = BACKEND_BY_PROVIDER[config.provider]
    if url.get_backend_name() != expected:
        raise ConfigurationError(
            f"Connection string backend '{url.get_backend_name()}' does not match "
            f"provider '{config.provider}'"
        )
    return url


SQLITE_EXECUTION_OPTIONS: Final[Mapping[str, object]] = MappingProxyType(
    {"schema_translate_map": dict.fromkeys(SCHEMAS)}
)


def create_store_engine(config: DatabaseConfig) -> Engine:
    url = database_url(config)
    if config.provider is DatabaseProvider.SQLITE:
        # SQLite has no schemas; every schema-qualified table lives in the main database
        return create_engine(url, execution_options=dict(SQLITE_EXECUTION_OPTIONS))
    return create_engine(url, pool_pre_ping=True)
