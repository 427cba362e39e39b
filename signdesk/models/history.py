"""History models for recorded request executions."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from signdesk.models.preset import PresetRequest
from signdesk.utils.helpers import generate_id

HISTORY_LIMIT = 500


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class RequestSummary(BaseModel):
    """The non-secret parts of a sent request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    appkey: str
    ver: str
    timestamp: str
    sign: str
    data_b64_len: int = 0


class HistoryItem(BaseModel):
    """One send attempt, successful or not."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=generate_id)
    ts: datetime = Field(default_factory=_utc_now)
    duration_ms: int = 0
    status: int | None = None
    ok: bool = False
    request_summary: RequestSummary
    request: PresetRequest | None = None
    response_text: str = ""
    error_message: str | None = None

    @field_validator("duration_ms")
    @classmethod
    def validate_duration_ms(cls, value: int) -> int:
        """Duration must not be negative."""
        if value < 0:
            msg = "duration_ms must not be negative"
            raise ValueError(msg)
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: int | None) -> int | None:
        """Status code must be between 100 and 599."""
        if value is not None and (value < 100 or value > 599):
            msg = "status must be between 100 and 599"
            raise ValueError(msg)
        return value


class StorageHistory(BaseModel):
    """History entries, newest first, with their retention limit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[HistoryItem] = Field(default_factory=list)
    limit: int = HISTORY_LIMIT
