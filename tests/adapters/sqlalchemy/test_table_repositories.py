"""Exercise the SQLAlchemy source/target repositories against SQLite."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session, sessionmaker

from identity_migrator.adapters.sqlalchemy import (
    LEGACY_TABLES,
    TARGET_TABLES,
    SqlAlchemySourceRepository,
    SqlAlchemyTargetRepository,
)
from identity_migrator.domain.catalog import DESCRIPTORS
from identity_migrator.domain.kinds import EntityKind
from identity_migrator.domain.records import NaturalKey, TargetRecord

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

    from identity_migrator.domain.descriptors import EntityMigrationDescriptor


@pytest.fixture
def source_session(source_engine: Engine) -> Iterator[Session]:
    session = sessionmaker(bind=source_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.mark.parametrize("descriptor", DESCRIPTORS, ids=lambda d: str(d.kind))
def test_descriptor_fields_exist_on_both_tables(descriptor: EntityMigrationDescriptor) -> None:
    legacy = LEGACY_TABLES[descriptor.kind]
    target = TARGET_TABLES[descriptor.kind]

    assert descriptor.source_key == tuple(column.key for column in legacy.primary_key.columns)
    for rule in descriptor.fields:
        assert rule.source_field in legacy.c
        assert rule.target in target.c
    for rule in descriptor.foreign_keys:
        assert rule.source_field in legacy.c
        assert rule.field in target.c
    if descriptor.target_id is not None:
        assert descriptor.target_id in target.c


def test_source_repository_lists_rows_in_key_order(
    source_engine: Engine,
    source_session: Session,
) -> None:
    users = LEGACY_TABLES[EntityKind.USER]
    with source_engine.begin() as connection:
        connection.execute(
            insert(users),
            [
                {"user_id": 2, "user_name": "bob", "normalized_user_name": "BOB"},
                {"user_id": 1, "user_name": "alice", "normalized_user_name": "ALICE"},
            ],
        )

    records = SqlAlchemySourceRepository(source_session, EntityKind.USER).list_all()

    assert [record.source_id for record in records] == [1, 2]
    assert records[0].kind is EntityKind.USER
    assert records[0].get("normalized_user_name") == "ALICE"
    assert records[0].get("email_confirmed") is False


def test_source_repository_uses_tuple_ids_for_composite_keys(
    source_engine: Engine,
    source_session: Session,
) -> None:
    with source_engine.begin() as connection:
        connection.execute(
            insert(LEGACY_TABLES[EntityKind.USER_ROLE]), [{"user_id": 1, "role_id": 5}]
        )

    [record] = SqlAlchemySourceRepository(source_session, EntityKind.USER_ROLE).list_all()

    assert record.source_id == (1, 5)


def test_target_repository_inserts_and_finds_by_natural_key(target_session: Session) -> None:
    repository = SqlAlchemyTargetRepository(target_session, EntityKind.ROLE)
    role_id = UUID("0190a9e4-7c3b-7cc0-8a2e-2f6a1f9f0b11")
    repository.insert_batch(
        [
            TargetRecord(
                kind=EntityKind.ROLE,
                values={"role_id": role_id, "name": "Admin", "normalized_name": "ADMIN"},
            )
        ]
    )

    found = repository.find_by_natural_key(NaturalKey(parts=(("normalized_name", "ADMIN"),)))
    missing = repository.find_by_natural_key(NaturalKey(parts=(("normalized_name", "NOPE"),)))

    assert found is not None
    assert found.get("role_id") == role_id
    assert found.get("name") == "Admin"
    assert missing is None


def test_target_repository_matches_null_components(target_session: Session) -> None:
    repository = SqlAlchemyTargetRepository(target_session, EntityKind.MESSAGE_TEMPLATE)
    repository.insert_batch(
        [
            TargetRecord(
                kind=EntityKind.MESSAGE_TEMPLATE,
                values={"client_id": None, "message_type": "welcome", "language_code": "en"},
            )
        ]
    )
    key = NaturalKey(
        parts=(("client_id", None), ("message_type", "welcome"), ("language_code", "en"))
    )

    found = repository.find_by_natural_key(key)

    assert found is not None
    assert found.get("id") == 1


def test_target_repository_updates_by_primary_key(target_session: Session) -> None:
    table = TARGET_TABLES[EntityKind.USER]
    repository = SqlAlchemyTargetRepository(target_session, EntityKind.USER)
    user_id = UUID(int=42)
    created = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    repository.insert_batch(
        [
            TargetRecord(
                kind=EntityKind.USER,
                values={
                    "user_id": user_id,
                    "normalized_user_name": "ALICE",
                    "email": "old@example.com",
                    "email_confirmed": False,
                    "created_on": created,
                },
            )
        ]
    )
    existing = repository.find_by_natural_key(
        NaturalKey(parts=(("normalized_user_name", "ALICE"),))
    )
    assert existing is not None
    existing.values["email"] = "new@example.com"

    repository.update_batch([existing])

    email, created_on = target_session.execute(
        select(table.c.email, table.c.created_on).where(table.c.user_id == user_id)
    ).one()
    assert email == "new@example.com"
    assert created_on == created
    assert target_session.scalar(select(func.count()).select_from(table)) == 1


def test_update_without_primary_key_is_rejected(target_session: Session) -> None:
    repository = SqlAlchemyTargetRepository(target_session, EntityKind.SCOPE)

    with pytest.raises(ValueError, match="primary key"):
        repository.update_batch([TargetRecord(kind=EntityKind.SCOPE, values={"name": "openid"})])
