"""Migration descriptors for every legacy identity/OAuth table.

Field names are the snake_case keys used by the table metadata in
``identity_migrator.adapters.sqlalchemy``. Adding a kind means adding a
descriptor here and a pair of tables there.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .descriptors import (
    EntityMigrationDescriptor,
    FieldRule,
    ForeignKeyRule,
    IdentityStrategy,
    MissingReferencePolicy,
    NaturalKeySpec,
    copy_fields,
)
from .kinds import EntityKind, Stage

if TYPE_CHECKING:
    from collections.abc import Mapping


def _as_bytes(value: object) -> object:
    # some drivers hand back memoryview/bytearray for binary columns
    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    return value


_CLAIM_FIELDS: Final = copy_fields("claim_type", "claim_value", "created_on", "last_updated")


DATA_PROTECTION_KEYS = EntityMigrationDescriptor(
    kind=EntityKind.DATA_PROTECTION_KEY,
    table="IdentitySuite.DataProtectionKeys",
    stage=Stage.LOOKUP,
    source_key=("id",),
    fields=copy_fields("friendly_name", "xml"),
    natural_key=NaturalKeySpec(fields=("friendly_name",)),
    identity=IdentityStrategy.DATABASE,
    target_id="id",
)

MESSAGE_TEMPLATES = EntityMigrationDescriptor(
    kind=EntityKind.MESSAGE_TEMPLATE,
    table="IdentitySuite.MessageTemplates",
    stage=Stage.LOOKUP,
    source_key=("id",),
    fields=copy_fields(
        "client_id", "message_type", "language_code", "message_html", "message_code"
    ),
    natural_key=NaturalKeySpec(fields=("client_id", "message_type", "language_code")),
    identity=IdentityStrategy.DATABASE,
    target_id="id",
)

SESSION_CACHE = EntityMigrationDescriptor(
    kind=EntityKind.SESSION_CACHE,
    table="IdentitySuite.SessionCaches",
    stage=Stage.LOOKUP,
    source_key=("id",),
    fields=(
        FieldRule(target="id", on_update=False),
        FieldRule(target="value", transform=_as_bytes),
        *copy_fields("expires_at_time", "sliding_expiration_in_seconds", "absolute_expiration"),
    ),
    natural_key=NaturalKeySpec(fields=("id",)),
    identity=IdentityStrategy.PRESERVED,
    target_id="id",
)

USERS = EntityMigrationDescriptor(
    kind=EntityKind.USER,
    table="IdentityUser.Users",
    stage=Stage.PRINCIPAL,
    source_key=("user_id",),
    fields=copy_fields(
        "user_name",
        "normalized_user_name",
        "email",
        "normalized_email",
        "first_name",
        "last_name",
        "email_confirmed",
        "password_hash",
        "security_stamp",
        "concurrency_stamp",
        "phone_number",
        "phone_number_confirmed",
        "two_factor_enabled",
        "lockout_end",
        "lockout_enabled",
        "access_failed_count",
        "created_on",
        "last_updated",
    ),
    natural_key=NaturalKeySpec(fields=("normalized_user_name",)),
    identity=IdentityStrategy.TIME_ORDERED,
    target_id="user_id",
)

ROLES = EntityMigrationDescriptor(
    kind=EntityKind.ROLE,
    table="IdentityUser.Roles",
    stage=Stage.PRINCIPAL,
    source_key=("role_id",),
    fields=copy_fields(
        "name", "normalized_name", "concurrency_stamp", "created_on", "last_updated"
    ),
    natural_key=NaturalKeySpec(fields=("normalized_name",)),
    identity=IdentityStrategy.TIME_ORDERED,
    target_id="role_id",
)

APPLICATIONS = EntityMigrationDescriptor(
    kind=EntityKind.APPLICATION,
    table="IdentityServer.Applications",
    stage=Stage.PRINCIPAL,
    source_key=("id",),
    fields=copy_fields(
        "application_type",
        "client_id",
        "client_secret",
        "client_type",
        "concurrency_token",
        "consent_type",
        "display_name",
        "display_names",
        "json_web_key_set",
        "permissions",
        "post_logout_redirect_uris",
        "properties",
        "redirect_uris",
        "requirements",
        "settings",
    ),
    natural_key=NaturalKeySpec(fields=("client_id",)),
    identity=IdentityStrategy.TIME_ORDERED,
    target_id="id",
)

SCOPES = EntityMigrationDescriptor(
    kind=EntityKind.SCOPE,
    table="IdentityServer.Scopes",
    stage=Stage.PRINCIPAL,
    source_key=("id",),
    fields=copy_fields(
        "concurrency_token",
        "description",
        "descriptions",
        "display_name",
        "display_names",
        "name",
        "properties",
        "resources",
    ),
    natural_key=NaturalKeySpec(fields=("name",)),
    identity=IdentityStrategy.TIME_ORDERED,
    target_id="id",
)

USER_CLAIMS = EntityMigrationDescriptor(
    kind=EntityKind.USER_CLAIM,
    table="IdentityUser.UserClaims",
    stage=Stage.DEPENDENT,
    source_key=("user_claim_id",),
    fields=_CLAIM_FIELDS,
    foreign_keys=(ForeignKeyRule(field="user_id", references=EntityKind.USER),),
    natural_key=NaturalKeySpec(fields=("user_id", "claim_type", "claim_value")),
    identity=IdentityStrategy.DATABASE,
    target_id="id",
)

ROLE_CLAIMS = EntityMigrationDescriptor(
    kind=EntityKind.ROLE_CLAIM,
    table="IdentityUser.RoleClaims",
    stage=Stage.DEPENDENT,
    source_key=("role_claim_id",),
    fields=_CLAIM_FIELDS,
    foreign_keys=(ForeignKeyRule(field="role_id", references=EntityKind.ROLE),),
    natural_key=NaturalKeySpec(fields=("role_id", "claim_type", "claim_value")),
    identity=IdentityStrategy.DATABASE,
    target_id="id",
)

USER_LOGINS = EntityMigrationDescriptor(
    kind=EntityKind.USER_LOGIN,
    table="IdentityUser.UserLogins",
    stage=Stage.DEPENDENT,
    source_key=("login_provider", "provider_key", "user_id"),
    fields=copy_fields("login_provider", "provider_key", "provider_display_name"),
    foreign_keys=(ForeignKeyRule(field="user_id", references=EntityKind.USER),),
    natural_key=NaturalKeySpec(fields=("login_provider", "provider_key")),
)

USER_ROLES = EntityMigrationDescriptor(
    kind=EntityKind.USER_ROLE,
    table="IdentityUser.UserRoles",
    stage=Stage.DEPENDENT,
    source_key=("user_id", "role_id"),
    fields=(),
    foreign_keys=(
        ForeignKeyRule(field="user_id", references=EntityKind.USER),
        ForeignKeyRule(field="role_id", references=EntityKind.ROLE),
    ),
    natural_key=NaturalKeySpec(fields=("user_id", "role_id")),
    link=True,
)

USER_TOKENS = EntityMigrationDescriptor(
    kind=EntityKind.USER_TOKEN,
    table="IdentityUser.UserTokens",
    stage=Stage.DEPENDENT,
    source_key=("user_id", "login_provider", "name"),
    fields=copy_fields("login_provider", "name", "value"),
    foreign_keys=(ForeignKeyRule(field="user_id", references=EntityKind.USER),),
    natural_key=NaturalKeySpec(fields=("user_id", "login_provider", "name")),
)

AUTHORIZATIONS = EntityMigrationDescriptor(
    kind=EntityKind.AUTHORIZATION,
    table="IdentityServer.Authorizations",
    stage=Stage.CROSS_REFERENCED,
    source_key=("id",),
    fields=copy_fields(
        "concurrency_token",
        "creation_date",
        "properties",
        "scopes",
        "status",
        "subject",
        "type",
    ),
    foreign_keys=(
        ForeignKeyRule(
            field="application_id",
            references=EntityKind.APPLICATION,
            on_missing=MissingReferencePolicy.NULLIFY,
        ),
    ),
    natural_key=NaturalKeySpec(
        fields=("application_id", "subject", "type", "creation_date", "scopes"),
    ),
    identity=IdentityStrategy.TIME_ORDERED,
    target_id="id",
)

TOKENS = EntityMigrationDescriptor(
    kind=EntityKind.TOKEN,
    table="IdentityServer.Tokens",
    stage=Stage.CROSS_REFERENCED,
    source_key=("id",),
    fields=copy_fields(
        "concurrency_token",
        "creation_date",
        "expiration_date",
        "payload",
        "properties",
        "redemption_date",
        "reference_id",
        "status",
        "subject",
        "type",
    ),
    foreign_keys=(
        ForeignKeyRule(
            field="application_id",
            references=EntityKind.APPLICATION,
            on_missing=MissingReferencePolicy.NULLIFY,
        ),
        ForeignKeyRule(
            field="authorization_id",
            references=EntityKind.AUTHORIZATION,
            on_missing=MissingReferencePolicy.NULLIFY,
        ),
    ),
    natural_key=NaturalKeySpec(
        fields=("reference_id",),
        nullable=False,
        fallback=NaturalKeySpec(
            fields=("application_id", "authorization_id", "subject", "type", "creation_date"),
        ),
    ),
    identity=IdentityStrategy.TIME_ORDERED,
    target_id="id",
)


DESCRIPTORS: Final[tuple[EntityMigrationDescriptor, ...]] = (
    DATA_PROTECTION_KEYS,
    MESSAGE_TEMPLATES,
    SESSION_CACHE,
    USERS,
    ROLES,
    APPLICATIONS,
    SCOPES,
    USER_CLAIMS,
    ROLE_CLAIMS,
    USER_LOGINS,
    USER_ROLES,
    USER_TOKENS,
    AUTHORIZATIONS,
    TOKENS,
)

DESCRIPTOR_BY_KIND: Final[Mapping[EntityKind, EntityMigrationDescriptor]] = MappingProxyType(
    {descriptor.kind: descriptor for descriptor in DESCRIPTORS}
)
