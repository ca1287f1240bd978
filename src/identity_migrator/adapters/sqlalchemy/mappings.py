"""SQLAlchemy table metadata for the legacy and successor schemas.

Column names match the physical databases; column keys are the snake_case field
names used by the migration descriptors.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
)

from identity_migrator.domain.kinds import EntityKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

UUIDColumnType = Uuid[uuid.UUID]

IDENTITY_USER: Final[str] = "IdentityUser"
IDENTITY_SERVER: Final[str] = "IdentityServer"
IDENTITY_SUITE: Final[str] = "IdentitySuite"
SCHEMAS: Final[tuple[str, ...]] = (IDENTITY_USER, IDENTITY_SERVER, IDENTITY_SUITE)


class UTCDateTime(TypeDecorator[datetime]):
    """``DateTimeOffset`` columns; values are normalised to aware UTC datetimes."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


NAMING_CONVENTION: Final = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

legacy_metadata = MetaData(naming_convention=NAMING_CONVENTION)
target_metadata = MetaData(naming_convention=NAMING_CONVENTION)


# Legacy schema (integer keys) --------------------------------------------------

legacy_user_table = Table(
    "User",
    legacy_metadata,
    Column("UserId", Integer, key="user_id", primary_key=True),
    Column("FirstName", String(256), key="first_name"),
    Column("LastName", String(256), key="last_name"),
    Column("UserName", String(256), key="user_name"),
    Column("NormalizedUserName", String(256), key="normalized_user_name"),
    Column("Email", String(256), key="email"),
    Column("NormalizedEmail", String(256), key="normalized_email"),
    Column("EmailConfirmed", Boolean, key="email_confirmed", nullable=False, default=False),
    Column("PasswordHash", Text, key="password_hash"),
    Column("SecurityStamp", Text, key="security_stamp"),
    Column("ConcurrencyStamp", Text, key="concurrency_stamp"),
    Column("PhoneNumber", String(64), key="phone_number"),
    Column("PhoneNumberConfirmed", Boolean, key="phone_number_confirmed", default=False),
    Column("TwoFactorEnabled", Boolean, key="two_factor_enabled", default=False),
    Column("LockoutEnd", UTCDateTime, key="lockout_end"),
    Column("LockoutEnabled", Boolean, key="lockout_enabled", default=False),
    Column("AccessFailedCount", Integer, key="access_failed_count", default=0),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

legacy_role_table = Table(
    "Role",
    legacy_metadata,
    Column("RoleId", Integer, key="role_id", primary_key=True),
    Column("Name", String(256), key="name"),
    Column("NormalizedName", String(256), key="normalized_name"),
    Column("ConcurrencyStamp", Text, key="concurrency_stamp"),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

legacy_user_role_table = Table(
    "UserRole",
    legacy_metadata,
    Column("UserId", Integer, key="user_id", primary_key=True),
    Column("RoleId", Integer, key="role_id", primary_key=True),
    schema=IDENTITY_USER,
)

legacy_user_claim_table = Table(
    "UserClaim",
    legacy_metadata,
    Column("UserClaimId", Integer, key="user_claim_id", primary_key=True),
    Column("UserId", Integer, key="user_id", nullable=False),
    Column("ClaimType", Text, key="claim_type"),
    Column("ClaimValue", Text, key="claim_value"),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

legacy_role_claim_table = Table(
    "RoleClaim",
    legacy_metadata,
    Column("RoleClaimId", Integer, key="role_claim_id", primary_key=True),
    Column("RoleId", Integer, key="role_id", nullable=False),
    Column("ClaimType", Text, key="claim_type"),
    Column("ClaimValue", Text, key="claim_value"),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

legacy_user_login_table = Table(
    "UserLogin",
    legacy_metadata,
    Column("LoginProvider", String(128), key="login_provider", primary_key=True),
    Column("ProviderKey", String(128), key="provider_key", primary_key=True),
    Column("ProviderDisplayName", Text, key="provider_display_name"),
    Column("UserId", Integer, key="user_id", primary_key=True),
    schema=IDENTITY_USER,
)

legacy_user_token_table = Table(
    "UserToken",
    legacy_metadata,
    Column("UserId", Integer, key="user_id", primary_key=True),
    Column("LoginProvider", String(128), key="login_provider", primary_key=True),
    Column("Name", String(128), key="name", primary_key=True),
    Column("Value", Text, key="value"),
    schema=IDENTITY_USER,
)

legacy_application_table = Table(
    "Applications",
    legacy_metadata,
    Column("Id", Integer, key="id", primary_key=True),
    Column("ApplicationType", String(50), key="application_type"),
    Column("ClientId", String(100), key="client_id"),
    Column("ClientSecret", Text, key="client_secret"),
    Column("ClientType", String(50), key="client_type"),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("ConsentType", String(50), key="consent_type"),
    Column("DisplayName", Text, key="display_name"),
    Column("DisplayNames", Text, key="display_names"),
    Column("JsonWebKeySet", Text, key="json_web_key_set"),
    Column("Permissions", Text, key="permissions"),
    Column("PostLogoutRedirectUris", Text, key="post_logout_redirect_uris"),
    Column("Properties", Text, key="properties"),
    Column("RedirectUris", Text, key="redirect_uris"),
    Column("Requirements", Text, key="requirements"),
    Column("Settings", Text, key="settings"),
    schema=IDENTITY_SERVER,
)

legacy_scope_table = Table(
    "Scopes",
    legacy_metadata,
    Column("Id", Integer, key="id", primary_key=True),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("Description", Text, key="description"),
    Column("Descriptions", Text, key="descriptions"),
    Column("DisplayName", Text, key="display_name"),
    Column("DisplayNames", Text, key="display_names"),
    Column("Name", String(200), key="name"),
    Column("Properties", Text, key="properties"),
    Column("Resources", Text, key="resources"),
    schema=IDENTITY_SERVER,
)

legacy_authorization_table = Table(
    "Authorizations",
    legacy_metadata,
    Column("Id", Integer, key="id", primary_key=True),
    Column("ApplicationId", Integer, key="application_id"),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("CreationDate", DateTime, key="creation_date"),
    Column("Properties", Text, key="properties"),
    Column("Scopes", Text, key="scopes"),
    Column("Status", String(50), key="status"),
    Column("Subject", String(400), key="subject"),
    Column("Type", String(50), key="type"),
    schema=IDENTITY_SERVER,
)

legacy_token_table = Table(
    "Tokens",
    legacy_metadata,
    Column("Id", Integer, key="id", primary_key=True),
    Column("ApplicationId", Integer, key="application_id"),
    Column("AuthorizationId", Integer, key="authorization_id"),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("CreationDate", DateTime, key="creation_date"),
    Column("ExpirationDate", DateTime, key="expiration_date"),
    Column("Payload", Text, key="payload"),
    Column("Properties", Text, key="properties"),
    Column("RedemptionDate", DateTime, key="redemption_date"),
    Column("ReferenceId", String(100), key="reference_id"),
    Column("Status", String(50), key="status"),
    Column("Subject", String(400), key="subject"),
    Column("Type", String(50), key="type"),
    schema=IDENTITY_SERVER,
)

legacy_data_protection_key_table = Table(
    "DataProtectionKeys",
    legacy_metadata,
    Column("Id", Integer, key="id", primary_key=True),
    Column("FriendlyName", Text, key="friendly_name"),
    Column("Xml", Text, key="xml"),
)

legacy_message_template_table = Table(
    "MessageTemplates",
    legacy_metadata,
    Column("Id", Integer, key="id", primary_key=True),
    Column("ClientId", String(100), key="client_id"),
    Column("MessageType", String(100), key="message_type"),
    Column("LanguageCode", String(16), key="language_code"),
    Column("MessageHtml", Text, key="message_html"),
    Column("MessageCode", Text, key="message_code"),
)

legacy_session_cache_table = Table(
    "SessionCache",
    legacy_metadata,
    Column("Id", String(449), key="id", primary_key=True),
    Column("Value", LargeBinary, key="value", nullable=False),
    Column("ExpiresAtTime", UTCDateTime, key="expires_at_time", nullable=False),
    Column("SlidingExpirationInSeconds", BigInteger, key="sliding_expiration_in_seconds"),
    Column("AbsoluteExpiration", UTCDateTime, key="absolute_expiration"),
)


# Successor schema (time-ordered UUID keys) ------------------------------------

user_table = Table(
    "Users",
    target_metadata,
    Column("UserId", UUIDColumnType, key="user_id", primary_key=True),
    Column("UserName", String(256), key="user_name"),
    Column("NormalizedUserName", String(256), key="normalized_user_name", unique=True),
    Column("Email", String(256), key="email"),
    Column("NormalizedEmail", String(256), key="normalized_email"),
    Column("FirstName", String(256), key="first_name"),
    Column("LastName", String(256), key="last_name"),
    Column("EmailConfirmed", Boolean, key="email_confirmed", nullable=False, default=False),
    Column("PasswordHash", Text, key="password_hash"),
    Column("SecurityStamp", Text, key="security_stamp"),
    Column("ConcurrencyStamp", Text, key="concurrency_stamp"),
    Column("PhoneNumber", String(64), key="phone_number"),
    Column("PhoneNumberConfirmed", Boolean, key="phone_number_confirmed", default=False),
    Column("TwoFactorEnabled", Boolean, key="two_factor_enabled", default=False),
    Column("LockoutEnd", UTCDateTime, key="lockout_end"),
    Column("LockoutEnabled", Boolean, key="lockout_enabled", default=False),
    Column("AccessFailedCount", Integer, key="access_failed_count", default=0),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

role_table = Table(
    "Roles",
    target_metadata,
    Column("RoleId", UUIDColumnType, key="role_id", primary_key=True),
    Column("Name", String(256), key="name"),
    Column("NormalizedName", String(256), key="normalized_name", unique=True),
    Column("ConcurrencyStamp", Text, key="concurrency_stamp"),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

user_role_table = Table(
    "UserRoles",
    target_metadata,
    Column(
        "UserId",
        UUIDColumnType,
        ForeignKey(user_table.c.user_id),
        key="user_id",
        primary_key=True,
    ),
    Column(
        "RoleId",
        UUIDColumnType,
        ForeignKey(role_table.c.role_id),
        key="role_id",
        primary_key=True,
    ),
    schema=IDENTITY_USER,
)

user_claim_table = Table(
    "UserClaims",
    target_metadata,
    Column("Id", Integer, key="id", primary_key=True, autoincrement=True),
    Column(
        "UserId",
        UUIDColumnType,
        ForeignKey(user_table.c.user_id),
        key="user_id",
        nullable=False,
    ),
    Column("ClaimType", Text, key="claim_type"),
    Column("ClaimValue", Text, key="claim_value"),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

role_claim_table = Table(
    "RoleClaims",
    target_metadata,
    Column("Id", Integer, key="id", primary_key=True, autoincrement=True),
    Column(
        "RoleId",
        UUIDColumnType,
        ForeignKey(role_table.c.role_id),
        key="role_id",
        nullable=False,
    ),
    Column("ClaimType", Text, key="claim_type"),
    Column("ClaimValue", Text, key="claim_value"),
    Column("CreatedOn", UTCDateTime, key="created_on"),
    Column("LastUpdated", UTCDateTime, key="last_updated"),
    schema=IDENTITY_USER,
)

user_login_table = Table(
    "UserLogins",
    target_metadata,
    Column("LoginProvider", String(128), key="login_provider", primary_key=True),
    Column("ProviderKey", String(128), key="provider_key", primary_key=True),
    Column("ProviderDisplayName", Text, key="provider_display_name"),
    Column(
        "UserId",
        UUIDColumnType,
        ForeignKey(user_table.c.user_id),
        key="user_id",
        nullable=False,
    ),
    schema=IDENTITY_USER,
)

user_token_table = Table(
    "UserTokens",
    target_metadata,
    Column(
        "UserId",
        UUIDColumnType,
        ForeignKey(user_table.c.user_id),
        key="user_id",
        primary_key=True,
    ),
    Column("LoginProvider", String(128), key="login_provider", primary_key=True),
    Column("Name", String(128), key="name", primary_key=True),
    Column("Value", Text, key="value"),
    schema=IDENTITY_USER,
)

application_table = Table(
    "Applications",
    target_metadata,
    Column("Id", UUIDColumnType, key="id", primary_key=True),
    Column("ApplicationType", String(50), key="application_type"),
    Column("ClientId", String(100), key="client_id", unique=True),
    Column("ClientSecret", Text, key="client_secret"),
    Column("ClientType", String(50), key="client_type"),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("ConsentType", String(50), key="consent_type"),
    Column("DisplayName", Text, key="display_name"),
    Column("DisplayNames", Text, key="display_names"),
    Column("JsonWebKeySet", Text, key="json_web_key_set"),
    Column("Permissions", Text, key="permissions"),
    Column("PostLogoutRedirectUris", Text, key="post_logout_redirect_uris"),
    Column("Properties", Text, key="properties"),
    Column("RedirectUris", Text, key="redirect_uris"),
    Column("Requirements", Text, key="requirements"),
    Column("Settings", Text, key="settings"),
    schema=IDENTITY_SERVER,
)

scope_table = Table(
    "Scopes",
    target_metadata,
    Column("Id", UUIDColumnType, key="id", primary_key=True),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("Description", Text, key="description"),
    Column("Descriptions", Text, key="descriptions"),
    Column("DisplayName", Text, key="display_name"),
    Column("DisplayNames", Text, key="display_names"),
    Column("Name", String(200), key="name", unique=True),
    Column("Properties", Text, key="properties"),
    Column("Resources", Text, key="resources"),
    schema=IDENTITY_SERVER,
)

authorization_table = Table(
    "Authorizations",
    target_metadata,
    Column("Id", UUIDColumnType, key="id", primary_key=True),
    Column(
        "ApplicationId",
        UUIDColumnType,
        ForeignKey(application_table.c.id),
        key="application_id",
        nullable=True,
    ),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("CreationDate", DateTime, key="creation_date"),
    Column("Properties", Text, key="properties"),
    Column("Scopes", Text, key="scopes"),
    Column("Status", String(50), key="status"),
    Column("Subject", String(400), key="subject"),
    Column("Type", String(50), key="type"),
    schema=IDENTITY_SERVER,
)

token_table = Table(
    "Tokens",
    target_metadata,
    Column("Id", UUIDColumnType, key="id", primary_key=True),
    Column(
        "ApplicationId",
        UUIDColumnType,
        ForeignKey(application_table.c.id),
        key="application_id",
        nullable=True,
    ),
    Column(
        "AuthorizationId",
        UUIDColumnType,
        ForeignKey(authorization_table.c.id),
        key="authorization_id",
    ),
    Column("ConcurrencyToken", String(50), key="concurrency_token"),
    Column("CreationDate", DateTime, key="creation_date"),
    Column("ExpirationDate", DateTime, key="expiration_date"),
    Column("Payload", Text, key="payload"),
    Column("Properties", Text, key="properties"),
    Column("RedemptionDate", DateTime, key="redemption_date"),
    Column("ReferenceId", String(100), key="reference_id", unique=True),
    Column("Status", String(50), key="status"),
    Column("Subject", String(400), key="subject"),
    Column("Type", String(50), key="type"),
    schema=IDENTITY_SERVER,
)

data_protection_key_table = Table(
    "DataProtectionKeys",
    target_metadata,
    Column("Id", Integer, key="id", primary_key=True, autoincrement=True),
    Column("FriendlyName", Text, key="friendly_name"),
    Column("Xml", Text, key="xml"),
    schema=IDENTITY_SUITE,
)

message_template_table = Table(
    "MessageTemplates",
    target_metadata,
    Column("Id", Integer, key="id", primary_key=True, autoincrement=True),
    Column("ClientId", String(100), key="client_id"),
    Column("MessageType", String(100), key="message_type"),
    Column("LanguageCode", String(16), key="language_code"),
    Column("MessageHtml", Text, key="message_html"),
    Column("MessageCode", Text, key="message_code"),
    schema=IDENTITY_SUITE,
)

session_cache_table = Table(
    "SessionCache",
    target_metadata,
    Column("Id", String(449), key="id", primary_key=True),
    Column("Value", LargeBinary, key="value", nullable=False),
    Column("ExpiresAtTime", UTCDateTime, key="expires_at_time", nullable=False),
    Column("SlidingExpirationInSeconds", BigInteger, key="sliding_expiration_in_seconds"),
    Column("AbsoluteExpiration", UTCDateTime, key="absolute_expiration"),
    schema=IDENTITY_SUITE,
)


LEGACY_TABLES: Final[Mapping[EntityKind, Table]] = MappingProxyType(
    {
        EntityKind.DATA_PROTECTION_KEY: legacy_data_protection_key_table,
        EntityKind.MESSAGE_TEMPLATE: legacy_message_template_table,
        EntityKind.SESSION_CACHE: legacy_session_cache_table,
        EntityKind.USER: legacy_user_table,
        EntityKind.ROLE: legacy_role_table,
        EntityKind.APPLICATION: legacy_application_table,
        EntityKind.SCOPE: legacy_scope_table,
        EntityKind.USER_CLAIM: legacy_user_claim_table,
        EntityKind.ROLE_CLAIM: legacy_role_claim_table,
        EntityKind.USER_LOGIN: legacy_user_login_table,
        EntityKind.USER_ROLE: legacy_user_role_table,
        EntityKind.USER_TOKEN: legacy_user_token_table,
        EntityKind.AUTHORIZATION: legacy_authorization_table,
        EntityKind.TOKEN: legacy_token_table,
    }
)

TARGET_TABLES: Final[Mapping[EntityKind, Table]] = MappingProxyType(
    {
        EntityKind.DATA_PROTECTION_KEY: data_protection_key_table,
        EntityKind.MESSAGE_TEMPLATE: message_template_table,
        EntityKind.SESSION_CACHE: session_cache_table,
        EntityKind.USER: user_table,
        EntityKind.ROLE: role_table,
        EntityKind.APPLICATION: application_table,
        EntityKind.SCOPE: scope_table,
        EntityKind.USER_CLAIM: user_claim_table,
        EntityKind.ROLE_CLAIM: role_claim_table,
        EntityKind.USER_LOGIN: user_login_table,
        EntityKind.USER_ROLE: user_role_table,
        EntityKind.USER_TOKEN: user_token_table,
        EntityKind.AUTHORIZATION: authorization_table,
        EntityKind.TOKEN: token_table,
    }
)


def create_legacy_tables(engine: Engine) -> None:
    """Create the legacy schema (used to stage fixtures and local copies)."""

    legacy_metadata.create_all(engine)


def create_target_tables(engine: Engine) -> None:
    """Create the successor schema on an empty database."""

    target_metadata.create_all(engine)
