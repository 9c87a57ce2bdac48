"""Small helpers shared by the store and the command layer."""

from __future__ import annotations

import os
import re
import time

from .models import ArtifactIdentity

_CROCKFORD32 = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def new_ulid(*, timestamp_ms: int | None = None) -> str:
    """
    Generate a ULID (26 chars, Crockford base32).

    48-bit millisecond timestamp followed by 80 bits of randomness, so
    tokens generated later sort after earlier ones.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    if not (0 <= timestamp_ms < (1 << 48)):
        raise ValueError("timestamp_ms out of range for ULID")

    value = (timestamp_ms << 80) | int.from_bytes(os.urandom(10), "big")
    chars = []
    for _ in range(26):
        chars.append(_CROCKFORD32[value & 31])
        value >>= 5
    return "".join(reversed(chars))


def export_filename(identity: ArtifactIdentity, extension: str, *, token: str | None = None) -> str:
    """`<token>_<name>.<major>.<minor>.<ext>`; the token keeps repeated exports apart."""
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", identity.name)
    return f"{token or new_ulid()}_{safe_name}.{identity.major}.{identity.minor}.{extension.lstrip('.')}"
