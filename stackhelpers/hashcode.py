"""Stable, non-negative hash codes for strings and lists of strings."""

from __future__ import annotations

import zlib
from collections.abc import Iterable

__all__ = ["hash_string", "hash_strings"]


def hash_string(s: str) -> int:
    """Return the CRC-32 (IEEE) checksum of ``s`` as a non-negative integer."""
    return zlib.crc32(s.encode("utf-8")) & 0xFFFFFFFF


def hash_strings(strings: Iterable[str]) -> str:
    """Hash a sequence of strings to a decimal hash code string.

    Each string is followed by a ``-`` before the whole is hashed.
    """
    joined = "".join(f"{s}-" for s in strings)
    return str(hash_string(joined))