"""Request timestamp formatting (yyyyMMddHHmmss)."""

from __future__ import annotations

import re
from datetime import datetime

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"
TIMESTAMP_PATTERN = re.compile(r"^\d{14}$")


def get_timestamp(now: datetime | None = None) -> str:
    """Return the local time as a 14-digit request timestamp."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def format_iso(ts: str) -> str:
    """Format an ISO-8601 string for display, or return it unchanged if unparseable."""
    try:
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return ts
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime(DISPLAY_FORMAT)


def is_valid_timestamp(value: str) -> bool:
    """Check if a string is a 14-digit request timestamp."""
    return bool(TIMESTAMP_PATTERN.match(value))
