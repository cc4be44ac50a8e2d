"""Time-ordered identifier generation."""

from __future__ import annotations

import os
import time
from uuid import UUID


def uuid7() -> UUID:
    """
    Build a version 7 UUID (RFC 9562).

    The first 48 bits hold the Unix timestamp in milliseconds, so values sort
    by creation time; the remaining bits are random.

    :returns: A new UUIDv7.
    :rtype: uuid.UUID
    """
    ts_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    rand_a = rand >> 62 & 0x0FFF
    rand_b = rand & 0x3FFF_FFFF_FFFF_FFFF

    value = (ts_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76
    value |= rand_a << 64
    value |= 0b10 << 62
    value |= rand_b
    return UUID(int=value)


def new_id() -> str:
    """Return a fresh UUIDv7 in canonical 36-character form."""
    return str(uuid7())
