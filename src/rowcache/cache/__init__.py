# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Cache store and distributed lock over a wide-column table.
"""

from .codec import JsonSerializer, PickleSerializer, Serializer, ValueCodec, get_serializer
from .lock import TableLock
from .store import CacheStore

__all__ = [
    "CacheStore",
    "TableLock",
    "Serializer",
    "PickleSerializer",
    "JsonSerializer",
    "ValueCodec",
    "get_serializer",
]
