"""Pydantic models describing the JSON settings document."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class SettingsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DatabaseSection(SettingsBaseModel):
    provider: str = Field(alias="Provider")
    connection_string: str = Field(alias="ConnectionString")

    _normalize_values = field_validator("provider", "connection_string", mode="before")(
        _blank_to_none
    )


class SettingsDocument(SettingsBaseModel):
    source_database: DatabaseSection = Field(alias="SourceDatabase")
    target_database: DatabaseSection = Field(alias="TargetDatabase")
