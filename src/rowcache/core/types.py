from __future__ import annotations

"""
rowcache.core.types
===================

Shared type aliases and small constants used across the codebase.
Keep this module **tiny** and dependency-free.
"""

from typing import Final, Union

# ---- Stored values -----------------------------------------------------------

# What actually lands in the value column: a native scalar or an opaque blob.
StoredValue = Union[int, float, bool, bytes]
# Numeric deltas accepted by increment/decrement.
Number = Union[int, float]

# ---- Time --------------------------------------------------------------------

Millis = int
TimestampMs = int  # wall-clock epoch timestamp (ms)

# Semantic sugar over str
TableName = str
RowKey = str
OwnerToken = str

# ---- Constants ---------------------------------------------------------------

DEFAULT_KEY_ATTRIBUTE: Final[str] = "key"
DEFAULT_VALUE_ATTRIBUTE: Final[str] = "value"
DEFAULT_EXPIRATION_ATTRIBUTE: Final[str] = "expires_at"

# Separator between the configured prefix and the logical key.
PREFIX_SEPARATOR: Final[str] = ":"

# "Forever" is five years out; far beyond any operational timescale.
FOREVER_SECONDS: Final[int] = 5 * 365 * 24 * 60 * 60

# NanoID defaults (URL-safe alphabet), used for generated lock owners.
DEFAULT_NANOID_ALPHABET: Final[str] = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz-"
DEFAULT_NANOID_SIZE: Final[int] = 21

# Pickle protocol for value blobs. Fixed so that processes on different
# interpreters encode equal owner tokens to equal bytes.
PICKLE_PROTOCOL: Final[int] = 4


__all__ = [
    "StoredValue",
    "Number",
    "Millis",
    "TimestampMs",
    "TableName",
    "RowKey",
    "OwnerToken",
    "DEFAULT_KEY_ATTRIBUTE",
    "DEFAULT_VALUE_ATTRIBUTE",
    "DEFAULT_EXPIRATION_ATTRIBUTE",
    "PREFIX_SEPARATOR",
    "FOREVER_SECONDS",
    "DEFAULT_NANOID_ALPHABET",
    "DEFAULT_NANOID_SIZE",
    "PICKLE_PROTOCOL",
]
