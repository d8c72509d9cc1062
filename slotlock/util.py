"""
Small helpers shared by the record and runtime layers.

Record identities default to ULIDs so that ids sort by creation time.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any


_CROCKFORD32 = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def _encode_crockford_base32(value: int, length: int) -> str:
    chars: list[str] = []
    for _ in range(length):
        chars.append(_CROCKFORD32[value & 31])
        value >>= 5
    return "".join(reversed(chars))


def new_ulid(*, timestamp_ms: int | None = None) -> str:
    """
    Generate a ULID (26 chars, Crockford base32).

    48-bit millisecond timestamp followed by 80 random bits.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    if not (0 <= timestamp_ms < (1 << 48)):
        raise ValueError("timestamp_ms out of range for ULID")

    randomness = int.from_bytes(os.urandom(10), "big")
    return _encode_crockford_base32((timestamp_ms << 80) | randomness, 26)


def canonical_json(data: dict[str, Any]) -> bytes:
    """Deterministic JSON encoding (sorted keys, no whitespace)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def bytes_from_hex(value: str) -> bytes:
    """Parse a hex payload, tolerating an optional 0x prefix."""
    value = value.strip()
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)
