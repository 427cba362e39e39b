"""Request signature computation: MD5(timestamp + data + password)."""

from __future__ import annotations

import re

from signdesk.core.digest import digest_upper_hex

SIGN_PATTERN = re.compile(r"^[0-9A-F]{32}$")


def build_sign_payload(timestamp: str, data_b64: str, password: str) -> str:
    """Concatenate the signed fields in wire order."""
    return f"{timestamp}{data_b64}{password}"


def compute_sign(timestamp: str, data_b64: str, password: str) -> str:
    """Compute the uppercase MD5 sign for a request.

    An empty payload yields an empty sign rather than the digest of b"".
    """
    payload = build_sign_payload(timestamp, data_b64, password)
    if not payload:
        return ""
    return digest_upper_hex(payload)


def is_valid_sign(value: str) -> bool:
    """Check if a string is a valid sign (32 uppercase hex chars)."""
    return bool(SIGN_PATTERN.match(value))
