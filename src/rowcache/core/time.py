from __future__ import annotations

"""
rowcache.core.time
==================

Clock abstractions:
- Clock Protocol for dependency-injection and testing.
- SystemClock: production default implementation.
- ManualClock: deterministic time control for tests.

Expiration timestamps are computed on the client from `now_ms()`, so every
verb of a store instance must read the same clock.
"""

import asyncio
import time
from typing import Protocol

from .types import Millis, TimestampMs


class Clock(Protocol):
    """Wall clock the store stamps expirations with."""

    def now_ms(self) -> TimestampMs: ...
    async def sleep_ms(self, ms: Millis) -> None: ...


class SystemClock:
    """Default production clock backed by system time."""

    def now_ms(self) -> TimestampMs:
        """Epoch milliseconds from system clock (persistable)."""
        return time.time_ns() // 1_000_000

    async def sleep_ms(self, ms: Millis) -> None:
        await asyncio.sleep(max(0.0, ms / 1000.0))


class ManualClock(SystemClock):
    """
    Controllable clock for tests: `now_ms` starts at `start_ms` and advances
    only through `sleep_ms`, which returns immediately.
    """

    def __init__(self, start_ms: Millis = 0) -> None:
        self._wall: Millis = start_ms

    def now_ms(self) -> TimestampMs:
        return self._wall

    async def sleep_ms(self, ms: Millis) -> None:
        self._wall += max(0, int(ms))
