from __future__ import annotations

"""
rowcache.core.utils
===================

Low-level helpers with **no external dependencies**:
- Compact JSON (de)serialization helpers.
- NanoID generator (URL-safe, crypto-strong).
"""

import json
from secrets import choice
from typing import Any

from .types import DEFAULT_NANOID_ALPHABET, DEFAULT_NANOID_SIZE


def dumps(x: Any) -> bytes:
    """
    Compact JSON dump to UTF-8 bytes (ensure_ascii=False, no spaces).
    """
    return json.dumps(x, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def loads(b: bytes) -> Any:
    """Inverse of dumps(): parse UTF-8 JSON bytes back to Python objects."""
    return json.loads(b.decode("utf-8"))


def nanoid(size: int = DEFAULT_NANOID_SIZE, alphabet: str = DEFAULT_NANOID_ALPHABET) -> str:
    """
    Generate a URL-safe NanoID (cryptographically strong).

    Args:
        size: number of characters.
        alphabet: allowed characters (default URL-safe).

    Returns:
        Random string of given size.
    """
    if size <= 0:
        raise ValueError("size must be positive")
    if not alphabet:
        raise ValueError("alphabet must be a non-empty string")
    return "".join(choice(alphabet) for _ in range(size))
