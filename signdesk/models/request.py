"""Models for validated send input, execution results and response views."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from signdesk.core.timestamps import is_valid_timestamp
from signdesk.models.preset import PresetRequest
from signdesk.utils.validators import is_valid_url, require_non_empty

DEFAULT_TIMEOUT_MS = 30_000
MIN_TIMEOUT_MS = 1_000
MAX_TIMEOUT_MS = 600_000


class SendForm(BaseModel):
    """Validated input for sending a signed request."""

    model_config = ConfigDict(validate_assignment=True)

    url: str
    appkey: str
    password: str
    ver: str = "1"
    timestamp: str
    data_raw: str
    data_b64: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """URL must be a valid http(s) URL."""
        if not is_valid_url(value):
            msg = "url must be a valid http(s) URL"
            raise ValueError(msg)
        return value

    @field_validator("appkey")
    @classmethod
    def validate_appkey(cls, value: str) -> str:
        """Appkey must be non-empty."""
        return require_non_empty(value, "appkey")

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        """Password must be non-empty."""
        return require_non_empty(value, "password")

    @field_validator("ver")
    @classmethod
    def validate_ver(cls, value: str) -> str:
        """Version must be non-empty."""
        return require_non_empty(value, "ver")

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, value: str) -> str:
        """Timestamp must be 14 digits (yyyyMMddHHmmss)."""
        if not is_valid_timestamp(value):
            msg = "timestamp must be yyyyMMddHHmmss"
            raise ValueError(msg)
        return value

    @field_validator("data_raw")
    @classmethod
    def validate_data_raw(cls, value: str) -> str:
        """Raw data must be non-empty."""
        return require_non_empty(value, "data_raw")

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout_ms(cls, value: int) -> int:
        """Timeout must be between 1 second and 10 minutes."""
        if value < MIN_TIMEOUT_MS or value > MAX_TIMEOUT_MS:
            msg = f"timeout_ms must be between {MIN_TIMEOUT_MS} and {MAX_TIMEOUT_MS}"
            raise ValueError(msg)
        return value

    def to_preset_request(self) -> PresetRequest:
        """Snapshot the form as a storable request."""
        return PresetRequest(
            url=self.url,
            appkey=self.appkey,
            password=self.password,
            ver=self.ver,
            timestamp=self.timestamp,
            data_raw=self.data_raw,
            data_b64=self.data_b64,
        )


class RequestExecution(BaseModel):
    """Outcome of one HTTP round-trip."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    response_text: str
    status: int | None = None
    ok: bool
    duration_ms: int
    timestamp: str
    sign: str


class RequestResult(BaseModel):
    """Response views: raw text, base64-decoded text and pretty JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    raw: str
    decoded: str | None = None
    json_text: str | None = Field(default=None, alias="json")
    json_error: str | None = None
    base64_error: str | None = None
