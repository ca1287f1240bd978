"""Entity kinds and plan stage tags (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EntityKind(StrEnum):
    """Discriminator for every table the migration moves."""

    # Lookup-only tables:
    DATA_PROTECTION_KEY = "data_protection_key"
    MESSAGE_TEMPLATE = "message_template"
    SESSION_CACHE = "session_cache"

    # Principal identity-bearing kinds:
    USER = "user"
    ROLE = "role"
    APPLICATION = "application"
    SCOPE = "scope"

    # Kinds that reference principals:
    USER_CLAIM = "user_claim"
    ROLE_CLAIM = "role_claim"
    USER_LOGIN = "user_login"
    USER_ROLE = "user_role"
    USER_TOKEN = "user_token"

    # OAuth grants:
    AUTHORIZATION = "authorization"
    TOKEN = "token"


class Stage(IntEnum):
    """Coarse dependency tier of a plan step; steps never regress to a lower stage."""

    LOOKUP = 1
    PRINCIPAL = 2
    DEPENDENT = 3
    CROSS_REFERENCED = 4
