"""SQLAlchemy adapter package for the migrator."""

from __future__ import annotations

from .engines import SQLITE_EXECUTION_OPTIONS, create_store_engine, database_url
from .mappings import (
    LEGACY_TABLES,
    TARGET_TABLES,
    create_legacy_tables,
    create_target_tables,
    legacy_metadata,
    target_metadata,
)
from .repositories import SqlAlchemySourceRepository, SqlAlchemyTargetRepository
from .unit_of_work import SqlAlchemyMigrationStores, SqlAlchemyStepUnitOfWork, StartupError

__all__ = [
    "LEGACY_TABLES",
    "SQLITE_EXECUTION_OPTIONS",
    "TARGET_TABLES",
    "SqlAlchemyMigrationStores",
    "SqlAlchemySourceRepository",
    "SqlAlchemyStepUnitOfWork",
    "SqlAlchemyTargetRepository",
    "StartupError",
    "create_legacy_tables",
    "create_store_engine",
    "create_target_tables",
    "database_url",
    "legacy_metadata",
    "target_metadata",
]
