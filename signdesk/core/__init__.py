"""Core signing logic -- pure functions with no I/O."""

from __future__ import annotations

from signdesk.core.digest import digest_upper_hex
from signdesk.core.encoding import (
    DecodeResult,
    decode_base64_to_utf8,
    encode_utf8_to_base64,
    is_valid_json,
    pretty_json,
    safe_json_parse,
)
from signdesk.core.signing import build_sign_payload, compute_sign, is_valid_sign
from signdesk.core.timestamps import format_iso, get_timestamp, is_valid_timestamp

__all__ = [
    # digest
    "digest_upper_hex",
    # encoding
    "DecodeResult",
    "decode_base64_to_utf8",
    "encode_utf8_to_base64",
    "is_valid_json",
    "pretty_json",
    "safe_json_parse",
    # signing
    "build_sign_payload",
    "compute_sign",
    "is_valid_sign",
    # timestamps
    "format_iso",
    "get_timestamp",
    "is_valid_timestamp",
]
