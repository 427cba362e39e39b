"""Base64 and JSON helpers for request payloads and responses."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of a base64 decode attempt. Exactly one of data/error is set."""

    data: str | None = None
    error: str | None = None


def encode_utf8_to_base64(text: str) -> str:
    """Encode text as standard base64 of its UTF-8 bytes."""
    if not text:
        return ""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_base64_to_utf8(text: str) -> DecodeResult:
    """Decode base64 text into a UTF-8 string.

    Never raises: malformed base64 or non-UTF-8 payloads are reported
    through DecodeResult.error.
    """
    if not text:
        return DecodeResult(data="")
    try:
        stripped = text.strip()
        # missing trailing padding is accepted
        stripped += "=" * (-len(stripped) % 4)
        raw = base64.b64decode(stripped, validate=True)
        return DecodeResult(data=raw.decode("utf-8"))
    except (binascii.Error, ValueError) as e:
        return DecodeResult(error=str(e))


def is_valid_json(text: str) -> bool:
    """Check if text parses as JSON."""
    if not text:
        return False
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def safe_json_parse(text: str) -> tuple[Any, str | None]:
    """Parse JSON, returning (data, None) or (None, error_message)."""
    try:
        return json.loads(text), None
    except ValueError as e:
        return None, str(e)


def pretty_json(data: Any) -> str:
    """Render data as two-space indented JSON, keeping non-ASCII characters."""
    return json.dumps(data, indent=2, ensure_ascii=False)
