"""URL and form-field validation utilities."""

from __future__ import annotations

from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """Check if a string is a valid HTTP/HTTPS URL."""
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def require_non_empty(value: str, field_name: str) -> str:
    """Return value unchanged, raising ValueError if it is blank."""
    if not value or not value.strip():
        msg = f"{field_name} must not be empty"
        raise ValueError(msg)
    return value
