from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from identity_migrator.adapters.sqlalchemy import (
    SQLITE_EXECUTION_OPTIONS,
    SqlAlchemyMigrationStores,
    create_legacy_tables,
    create_target_tables,
)
from identity_migrator.domain.identity_map import IdentityMappingStore
from identity_migrator.domain.reconcile import MigrationContext
from tests.support.migration import FakeStores, sequential_ids

if TYPE_CHECKING:
    from collections.abc import Iterator


def _sqlite_memory_engine() -> Engine:
    return create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        execution_options=dict(SQLITE_EXECUTION_OPTIONS),
    )


@pytest.fixture
def source_engine() -> Iterator[Engine]:
    engine = _sqlite_memory_engine()
    create_legacy_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def target_engine() -> Iterator[Engine]:
    engine = _sqlite_memory_engine()
    create_target_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def target_session(target_engine: Engine) -> Iterator[Session]:
    session = sessionmaker(bind=target_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_stores(source_engine: Engine, target_engine: Engine) -> SqlAlchemyMigrationStores:
    return SqlAlchemyMigrationStores(source_engine=source_engine, target_engine=target_engine)


@pytest.fixture
def fake_stores() -> FakeStores:
    return FakeStores()


@pytest.fixture
def context() -> MigrationContext:
    return MigrationContext(identities=IdentityMappingStore(), new_id=sequential_ids())
