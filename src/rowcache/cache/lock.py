# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Distributed lock stored as a cache row.

A lock is the row `prefix:name` whose value is the owner token and whose
expiration is the lock deadline. States:

    absent            -> no live row
    held(owner, ttl)  -> live row with value == owner

- `acquire` is `CacheStore.add`: it wins only if the row is absent or past its
  deadline, so concurrent acquirers are serialized by the store.
- `release` deletes the row only while it still holds this handle's owner;
  a late release can never drop somebody else's lock.
- `force_release` deletes unconditionally.

A handle is plain `(name, seconds, owner)` data. `CacheStore.restore_lock`
rebuilds one from the owner token in another process or request.

Nothing here waits or retries: callers that want to spin on a busy lock
re-invoke `acquire` themselves.
"""

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..core.log import get_logger, log_context
from ..core.types import OwnerToken

if TYPE_CHECKING:
    from .store import CacheStore

__all__ = ["TableLock"]

_log = get_logger("cache.lock")


class TableLock:
    """Owner-fenced, TTL-bounded lock handle."""

    def __init__(self, store: CacheStore, name: str, seconds: int, owner: OwnerToken) -> None:
        self._store = store
        self.name = name
        self.seconds = seconds
        self._owner = owner

    def __repr__(self) -> str:
        return f"TableLock(name={self.name!r}, seconds={self.seconds}, owner={self._owner!r})"

    @property
    def owner(self) -> OwnerToken:
        return self._owner

    async def acquire(self) -> bool:
        """
        Try once to take the lock. With `seconds <= 0` the row is written already
        expired, so the next acquirer may take it over.
        """
        acquired = await self._store.add(self.name, self._owner, self.seconds)
        self._store.metrics.lock("acquire", "applied" if acquired else "not_applied")
        _log.debug(
            "lock.acquire",
            event="lock.acquire",
            lock=self.name,
            owner=self._owner,
            acquired=acquired,
        )
        return acquired

    async def release(self) -> bool:
        """Release the lock if this handle's owner still holds it."""
        released = await self._store.forget_if_value(self.name, self._owner)
        self._store.metrics.lock("release", "released" if released else "not_released")
        _log.debug(
            "lock.release",
            event="lock.release",
            lock=self.name,
            owner=self._owner,
            released=released,
        )
        return released

    async def force_release(self) -> None:
        """Release the lock regardless of its current owner."""
        await self._store.forget(self.name)
        self._store.metrics.lock("force_release", "released")
        _log.info("lock.force_release", event="lock.force_release", lock=self.name)

    async def current_owner(self) -> OwnerToken | None:
        """Owner of the live lock row, or None when the lock is free."""
        return await self._store.get(self.name)

    async def is_owned_by_current_process(self) -> bool:
        return await self.current_owner() == self._owner

    async def run(self, callback: Callable[[], Awaitable[Any] | Any]) -> Any:
        """
        Acquire, run `callback`, release. Returns the callback's result, or
        False without calling it when the lock is busy. Records logged by the
        callback carry the lock name and owner.
        """
        if not await self.acquire():
            return False
        try:
            with log_context(lock=self.name, owner=self._owner):
                result = callback()
                if inspect.isawaitable(result):
                    result = await result
            return result
        finally:
            await self.release()
