"""Small general-purpose helpers."""

from __future__ import annotations

import math
import uuid

_BYTE_UNITS = ("B", "KB", "MB", "GB")


def generate_id() -> str:
    """Generate a random unique identifier."""
    return str(uuid.uuid4())


def format_bytes(size: float) -> str:
    """Format a byte count as a human-readable size (base 1024, capped at GB)."""
    if not math.isfinite(size) or size <= 0:
        return "0 B"
    value = float(size)
    idx = 0
    while value >= 1024 and idx < len(_BYTE_UNITS) - 1:
        value /= 1024
        idx += 1
    if idx == 0:
        return f"{value:.0f} {_BYTE_UNITS[idx]}"
    return f"{value:.1f} {_BYTE_UNITS[idx]}"
