from __future__ import annotations

import pytest

from identity_migrator.domain.catalog import DESCRIPTOR_BY_KIND, DESCRIPTORS, SESSION_CACHE, TOKENS
from identity_migrator.domain.descriptors import (
    EntityMigrationDescriptor,
    FieldRule,
    ForeignKeyRule,
    IdentityStrategy,
    MissingReferencePolicy,
    NaturalKeySpec,
    copy_fields,
)
from identity_migrator.domain.kinds import EntityKind, Stage
from identity_migrator.domain.records import NaturalKey


def test_field_rule_applies_transform_to_present_values_only() -> None:
    rule = FieldRule(target="name", source="Name", transform=str.upper)

    assert rule.extract({"Name": "alice"}) == "ALICE"
    assert rule.extract({"Name": None}) is None
    assert rule.extract({}) is None


def test_session_cache_value_transform_coerces_memoryview() -> None:
    value_rule = next(rule for rule in SESSION_CACHE.fields if rule.target == "value")

    assert value_rule.extract({"value": memoryview(b"abc")}) == b"abc"
    assert value_rule.extract({"value": b"abc"}) == b"abc"


def test_null_key_components_take_part_in_matching() -> None:
    key = DESCRIPTOR_BY_KIND[EntityKind.USER].natural_key
    assert key is not None

    assert key.extract({"normalized_user_name": None}) == NaturalKey(
        parts=(("normalized_user_name", None),)
    )


def test_strict_key_with_null_component_is_unusable_without_fallback() -> None:
    strict = NaturalKeySpec(fields=("a", "b"), nullable=False)

    assert strict.extract({"a": 1, "b": None}) is None
    assert strict.extract({"a": 1, "b": 2}) == NaturalKey(parts=(("a", 1), ("b", 2)))


def test_token_key_falls_back_when_reference_id_is_missing() -> None:
    spec = TOKENS.natural_key
    assert spec is not None
    values = {
        "reference_id": None,
        "application_id": None,
        "authorization_id": None,
        "subject": "42",
        "type": "access_token",
        "creation_date": None,
    }

    key = spec.extract(values)

    assert key is not None
    assert key.fields == ("application_id", "authorization_id", "subject", "type", "creation_date")
    assert spec.extract({**values, "reference_id": "ref"}) == NaturalKey(
        parts=(("reference_id", "ref"),)
    )


def test_natural_key_str_lists_components() -> None:
    key = NaturalKey.of(
        {"login_provider": "google", "provider_key": "abc"},
        ("login_provider", "provider_key"),
    )

    assert str(key) == "login_provider='google', provider_key='abc'"
    assert key.as_dict() == {"login_provider": "google", "provider_key": "abc"}


def test_source_id_is_scalar_or_tuple() -> None:
    users = DESCRIPTOR_BY_KIND[EntityKind.USER]
    links = DESCRIPTOR_BY_KIND[EntityKind.USER_ROLE]

    assert users.source_id({"user_id": 1}) == 1
    assert links.source_id({"user_id": 1, "role_id": 5}) == (1, 5)


def test_update_fields_never_include_identifier_or_matched_key() -> None:
    users = DESCRIPTOR_BY_KIND[EntityKind.USER]
    key = NaturalKey(parts=(("normalized_user_name", "ALICE"),))

    fields = users.update_fields(key)

    assert "user_id" not in fields
    assert "normalized_user_name" not in fields
    assert "email" in fields


def test_token_matched_on_reference_id_still_updates_foreign_keys() -> None:
    key = NaturalKey(parts=(("reference_id", "ref"),))

    fields = TOKENS.update_fields(key)

    assert "application_id" in fields
    assert "authorization_id" in fields
    assert "reference_id" not in fields


def test_dependencies_come_from_foreign_keys() -> None:
    assert DESCRIPTOR_BY_KIND[EntityKind.TOKEN].dependencies == {
        EntityKind.APPLICATION,
        EntityKind.AUTHORIZATION,
    }
    assert DESCRIPTOR_BY_KIND[EntityKind.USER].dependencies == frozenset()


def test_identity_strategy_requires_target_id() -> None:
    with pytest.raises(ValueError, match="needs target_id"):
        EntityMigrationDescriptor(
            kind=EntityKind.USER,
            table="IdentityUser.Users",
            stage=Stage.PRINCIPAL,
            source_key=("user_id",),
            fields=copy_fields("user_name"),
            identity=IdentityStrategy.TIME_ORDERED,
        )


def test_link_foreign_keys_must_be_mandatory() -> None:
    with pytest.raises(ValueError, match="must be mandatory"):
        EntityMigrationDescriptor(
            kind=EntityKind.USER_ROLE,
            table="IdentityUser.UserRoles",
            stage=Stage.DEPENDENT,
            source_key=("user_id", "role_id"),
            fields=(),
            foreign_keys=(
                ForeignKeyRule(field="user_id", references=EntityKind.USER),
                ForeignKeyRule(
                    field="role_id",
                    references=EntityKind.ROLE,
                    on_missing=MissingReferencePolicy.NULLIFY,
                ),
            ),
            natural_key=NaturalKeySpec(fields=("user_id", "role_id")),
            link=True,
        )


def test_empty_source_key_is_rejected() -> None:
    with pytest.raises(ValueError, match="source_key"):
        EntityMigrationDescriptor(
            kind=EntityKind.SCOPE,
            table="IdentityServer.Scopes",
            stage=Stage.PRINCIPAL,
            source_key=(),
            fields=(),
        )


def test_catalog_covers_every_kind_once() -> None:
    assert [descriptor.kind for descriptor in DESCRIPTORS] == list(EntityKind)
    assert len(DESCRIPTOR_BY_KIND) == len(EntityKind)


@pytest.mark.parametrize("descriptor", DESCRIPTORS, ids=lambda d: str(d.kind))
def test_every_kind_has_a_natural_key(descriptor: EntityMigrationDescriptor) -> None:
    assert descriptor.natural_key is not None
