# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Value encoding for the value column.

Numbers and booleans are stored as native columns so the store can increment
them atomically; every other value goes through a `Serializer` into an opaque
byte blob. Reads apply the exact inverse, so `decode(encode(v)) == v` for every
value the serializer accepts.
"""

import pickle
from typing import Any, Protocol

from ..core.types import PICKLE_PROTOCOL, StoredValue
from ..core.utils import dumps, loads
from ..errors import ValueDecodeError

__all__ = [
    "Serializer",
    "PickleSerializer",
    "JsonSerializer",
    "ValueCodec",
    "get_serializer",
]


class Serializer(Protocol):
    """Turns arbitrary application values into bytes and back. Must be pure."""

    name: str

    def serialize(self, value: Any) -> bytes: ...
    def deserialize(self, blob: bytes) -> Any: ...


class PickleSerializer:
    """
    Default serializer; reverses any picklable Python value.

    Blobs are written with a fixed protocol rather than the interpreter's
    default, because lock release compares encoded owner tokens byte for byte.

    Unpickling runs arbitrary code: anyone who can write rows to the table can
    execute code in every reader. Use `JsonSerializer` when the table is shared
    with less trusted writers.
    """

    name = "pickle"

    def __init__(self, protocol: int = PICKLE_PROTOCOL) -> None:
        self.protocol = protocol

    def serialize(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def deserialize(self, blob: bytes) -> Any:
        return pickle.loads(blob)


class JsonSerializer:
    """Compact UTF-8 JSON; limited to JSON-like values but readable from other languages."""

    name = "json"

    def serialize(self, value: Any) -> bytes:
        return dumps(value)

    def deserialize(self, blob: bytes) -> Any:
        return loads(blob)


_SERIALIZERS: dict[str, type] = {
    PickleSerializer.name: PickleSerializer,
    JsonSerializer.name: JsonSerializer,
}


def get_serializer(name: str) -> Serializer:
    """Build a serializer by its configured name."""
    try:
        return _SERIALIZERS[name]()
    except KeyError:
        raise ValueError(f"unknown serializer {name!r}; expected one of {sorted(_SERIALIZERS)}") from None


class ValueCodec:
    """Chooses the stored representation by the value's runtime kind."""

    def __init__(self, serializer: Serializer | None = None) -> None:
        self.serializer: Serializer = serializer or PickleSerializer()

    def encode(self, value: Any) -> StoredValue:
        # bool is an int subclass; both stay native.
        if isinstance(value, (int, float)):
            return value
        return self.serializer.serialize(value)

    def decode(self, stored: Any) -> Any:
        if isinstance(stored, (int, float)):
            return stored
        if isinstance(stored, (bytes, bytearray, memoryview)):
            return self.serializer.deserialize(bytes(stored))
        raise ValueDecodeError(f"Unexpected type [{type(stored).__name__}] occurred.")
