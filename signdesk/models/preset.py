"""Preset and group models for saved signed requests."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from signdesk.utils.helpers import generate_id


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class PresetRequest(BaseModel):
    """The editable fields of a signed request, as stored in a preset."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str = ""
    appkey: str = ""
    password: str = ""
    ver: str = "1"
    timestamp: str | None = None
    data_raw: str = ""
    data_b64: str | None = None


class PresetItem(BaseModel):
    """A named, saved request inside a group."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    name: str
    request: PresetRequest
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        """Preset name must be 1-200 characters after stripping."""
        value = value.strip()
        if not value or len(value) > 200:
            msg = "preset name must be between 1 and 200 characters"
            raise ValueError(msg)
        return value


class GroupItem(BaseModel):
    """An ordered collection of presets."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    name: str
    presets: list[PresetItem] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        """Group name must be 1-200 characters after stripping."""
        value = value.strip()
        if not value or len(value) > 200:
            msg = "group name must be between 1 and 200 characters"
            raise ValueError(msg)
        return value


class StorageGroups(BaseModel):
    """All groups plus the last-used selection."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    groups: list[GroupItem] = Field(default_factory=list)
    last_used_group_id: str | None = None
    last_used_preset_id: str | None = None
