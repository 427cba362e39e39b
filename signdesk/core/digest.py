"""Uppercase MD5 hex digest of a string."""

from __future__ import annotations

import hashlib


def digest_upper_hex(input: str) -> str:
    """Compute the MD5 digest of the UTF-8 encoding of input.

    Returns a 32-character uppercase hex string. The empty string is valid
    input and yields D41D8CD98F00B204E9800998ECF8427E.
    """
    return hashlib.md5(input.encode("utf-8")).hexdigest().upper()
