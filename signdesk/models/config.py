"""Application configuration model using pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_path: str = "data/signdesk.db"
    log_level: str = "INFO"
    request_timeout_ms: int = 30_000
    history_limit: int = 500
    max_retry_attempts: int = 1

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Ensure parent directory exists, creating it if necessary."""
        parent = Path(value).parent
        parent.mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value

    @field_validator("request_timeout_ms")
    @classmethod
    def validate_request_timeout_ms(cls, value: int) -> int:
        """Request timeout must be between 1 second and 10 minutes."""
        if value < 1_000 or value > 600_000:
            msg = "request_timeout_ms must be between 1000 and 600000"
            raise ValueError(msg)
        return value

    @field_validator("history_limit")
    @classmethod
    def validate_history_limit(cls, value: int) -> int:
        """History limit must be between 1 and 10000."""
        if value < 1 or value > 10_000:
            msg = "history_limit must be between 1 and 10000"
            raise ValueError(msg)
        return value

    @field_validator("max_retry_attempts")
    @classmethod
    def validate_max_retry_attempts(cls, value: int) -> int:
        """Max attempts (including the first) must be between 1 and 5."""
        if value < 1 or value > 5:
            msg = "max_retry_attempts must be between 1 and 5"
            raise ValueError(msg)
        return value
