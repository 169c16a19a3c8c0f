# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Cache semantics over a wide-column table.

The table has no native TTL, no create-if-absent-or-expired and no lock
primitive. All three are built here from conditional row writes and atomic
increments:

- every row carries an explicit `expires_at` (epoch ms); a row is live iff
  `expires_at > now`. Dead rows stay in the table until overwritten or
  deleted; reads filter them out server-side (lazy expiration).
- `add` is a single put guarded by `expires_at <= now` with missing columns
  allowed, so absent and expired rows are both replaceable in one atomic call.
- `increment`/`decrement` are existence-guarded updates; the arithmetic
  happens in the store.

Only `ConditionCheckFailed` is turned into a boolean/None result. Any other
`TableError` reaches the caller unchanged.

Usage:
    store = CacheStore(client, "cache", prefix="app")
    await store.put("user:1", {"name": "Ada"}, 60)
    if await store.add("job:42", "queued", 300):
        ...
"""

from typing import Any, Awaitable, Iterable, Mapping, TypeVar

from ..core.config import StoreConfig
from ..core.log import get_logger
from ..core.time import Clock, SystemClock
from ..core.types import (
    DEFAULT_EXPIRATION_ATTRIBUTE,
    DEFAULT_KEY_ATTRIBUTE,
    DEFAULT_VALUE_ATTRIBUTE,
    FOREVER_SECONDS,
    PREFIX_SEPARATOR,
    Number,
    OwnerToken,
    TimestampMs,
)
from ..core.utils import nanoid
from ..errors import UnsupportedOperation
from ..observability.metrics import CacheMetrics, default_metrics
from ..observability.tracing import trace
from ..storage.table import (
    ColumnCondition,
    Comparator,
    Condition,
    ConditionCheckFailed,
    PrimaryKey,
    RowExistence,
    RowPut,
    TableClient,
    TableError,
)
from .codec import Serializer, ValueCodec, get_serializer
from .lock import TableLock

__all__ = ["CacheStore"]

_T = TypeVar("_T")


class CacheStore:
    """
    Cache verbs (get/many/put/put_many/add/increment/decrement/forever/forget)
    and lock factory over one table.

    Args:
        client: driver implementing `TableClient`.
        table: table name.
        key_attribute / value_attribute / expiration_attribute: column names.
        prefix: namespace for logical keys; stored keys are `prefix:key`
            (an empty prefix adds no separator).
        serializer: blob serializer for non-numeric values (pickle by default).
        clock: source of `now`; expiration timestamps are computed client-side.
        metrics: metric set; the process-wide default when omitted.
        forever_seconds: lifetime used by `forever`.
    """

    def __init__(
        self,
        client: TableClient,
        table: str,
        *,
        key_attribute: str = DEFAULT_KEY_ATTRIBUTE,
        value_attribute: str = DEFAULT_VALUE_ATTRIBUTE,
        expiration_attribute: str = DEFAULT_EXPIRATION_ATTRIBUTE,
        prefix: str = "",
        serializer: Serializer | None = None,
        clock: Clock | None = None,
        metrics: CacheMetrics | None = None,
        forever_seconds: int = FOREVER_SECONDS,
    ) -> None:
        self._client = client
        self.table = table
        self.key_attribute = key_attribute
        self.value_attribute = value_attribute
        self.expiration_attribute = expiration_attribute
        self.forever_seconds = forever_seconds
        self.codec = ValueCodec(serializer)
        self.clock: Clock = clock or SystemClock()
        self.metrics = metrics or default_metrics()
        self._log = get_logger("cache.store")
        self._set_prefix(prefix)

    @classmethod
    def from_config(
        cls,
        client: TableClient,
        config: StoreConfig,
        *,
        clock: Clock | None = None,
        metrics: CacheMetrics | None = None,
    ) -> CacheStore:
        return cls(
            client,
            config.table,
            key_attribute=config.attributes.key,
            value_attribute=config.attributes.value,
            expiration_attribute=config.attributes.expiration,
            prefix=config.prefix,
            serializer=get_serializer(config.serializer),
            clock=clock,
            metrics=metrics,
            forever_seconds=config.forever_seconds,
        )

    # ---- Accessors -----------------------------------------------------------

    @property
    def prefix(self) -> str:
        """The key prefix including its separator ("" when unprefixed)."""
        return self._prefix

    @property
    def client(self) -> TableClient:
        return self._client

    # ---- Reads ---------------------------------------------------------------

    @trace("rowcache.get")
    async def get(self, key: str) -> Any:
        """Return the live value for `key`, or None."""
        row = await self._call(
            "get_row",
            self._client.get_row(self.table, self._pk(key), column_filter=self._live_filter(self._now())),
        )
        if row is None or self.value_attribute not in row:
            self.metrics.cache("get", "miss")
            return None
        self.metrics.cache("get", "hit")
        return self.codec.decode(row[self.value_attribute])

    @trace("rowcache.many")
    async def many(self, keys: Iterable[str]) -> dict[str, Any]:
        """
        Return live values for `keys` in one batched read. Every requested key
        is present in the result; missing or expired ones map to None.
        """
        wanted = list(dict.fromkeys(keys))
        result: dict[str, Any] = dict.fromkeys(wanted)
        if not wanted:
            return result

        rows = await self._call(
            "batch_get_row",
            self._client.batch_get_row(
                self.table,
                [self._pk(k) for k in wanted],
                column_filter=self._live_filter(self._now()),
            ),
        )

        hits = 0
        for row in rows:
            if row is None or self.value_attribute not in row:
                continue
            result[self._pure(row[self.key_attribute])] = self.codec.decode(row[self.value_attribute])
            hits += 1

        if hits:
            self.metrics.cache("many", "hit", hits)
        if len(wanted) - hits:
            self.metrics.cache("many", "miss", len(wanted) - hits)
        return result

    # ---- Writes --------------------------------------------------------------

    @trace("rowcache.put")
    async def put(self, key: str, value: Any, seconds: int) -> bool:
        """Store `value` for `seconds` (0 or less: already expired). Last writer wins."""
        await self._call(
            "put_row",
            self._client.put_row(self.table, self._pk(key), self._attributes(value, self._expires_at(seconds))),
        )
        self.metrics.cache("put", "ok")
        return True

    @trace("rowcache.put_many")
    async def put_many(self, values: Mapping[str, Any], seconds: int) -> bool:
        """Store every entry of `values` with the same expiration in one batched write."""
        if not values:
            return True
        expiration = self._expires_at(seconds)
        puts = [RowPut(self._pk(k), self._attributes(v, expiration)) for k, v in values.items()]
        await self._call("batch_write_row", self._client.batch_write_row(self.table, puts))
        self.metrics.cache("put_many", "ok", len(puts))
        return True

    @trace("rowcache.add")
    async def add(self, key: str, value: Any, seconds: int) -> bool:
        """
        Store `value` only if `key` is absent or expired. Returns False when a
        live row already exists.
        """
        now = self._now()
        # Only rows that do not exist or that have expired: expires_at <= now.
        condition = Condition(
            RowExistence.IGNORE,
            ColumnCondition(self.expiration_attribute, Comparator.LESS_EQUAL, now, filter_if_missing=False),
        )
        try:
            await self._call(
                "put_row",
                self._client.put_row(
                    self.table,
                    self._pk(key),
                    self._attributes(value, self._expires_at(seconds, now=now)),
                    condition=condition,
                ),
            )
        except ConditionCheckFailed:
            self._log.debug("cache.add.not_applied", event="cache.add.not_applied", table=self.table, key=key)
            self.metrics.cache("add", "not_applied")
            return False
        self.metrics.cache("add", "applied")
        return True

    @trace("rowcache.increment")
    async def increment(self, key: str, value: Number = 1) -> Number | None:
        """Atomically add `value` to an existing numeric row. Returns the new value, or None if absent."""
        return await self._adjust("increment", key, value)

    @trace("rowcache.decrement")
    async def decrement(self, key: str, value: Number = 1) -> Number | None:
        """Atomically subtract `value` from an existing numeric row. Returns the new value, or None if absent."""
        return await self._adjust("decrement", key, -value)

    @trace("rowcache.forever")
    async def forever(self, key: str, value: Any) -> bool:
        return await self.put(key, value, self.forever_seconds)

    @trace("rowcache.forget")
    async def forget(self, key: str) -> bool:
        """Delete `key`. Deleting an absent key succeeds."""
        await self._call("delete_row", self._client.delete_row(self.table, self._pk(key)))
        self.metrics.cache("forget", "ok")
        return True

    @trace("rowcache.forget_if_value")
    async def forget_if_value(self, key: str, value: Any) -> bool:
        """
        Delete `key` only if its stored value equals `value` (compared in
        encoded form by the store). Returns False when the row is absent or
        holds something else.
        """
        condition = Condition(
            RowExistence.EXPECT_EXIST,
            ColumnCondition(self.value_attribute, Comparator.EQUAL, self.codec.encode(value)),
        )
        try:
            await self._call("delete_row", self._client.delete_row(self.table, self._pk(key), condition=condition))
        except ConditionCheckFailed:
            self._log.debug("cache.forget.not_applied", event="cache.forget.not_applied", table=self.table, key=key)
            self.metrics.cache("forget_if_value", "not_applied")
            return False
        self.metrics.cache("forget_if_value", "applied")
        return True

    @trace("rowcache.flush")
    async def flush(self) -> bool:
        """Always raises: the table cannot be truncated cheaply."""
        self._log.warning("cache.flush.unsupported", event="cache.flush.unsupported", table=self.table)
        self.metrics.cache("flush", "error")
        raise UnsupportedOperation(
            "The backing table does not support flushing an entire table. Please create a new table."
        )

    # ---- Locks ---------------------------------------------------------------

    def lock(self, name: str, seconds: int = 0, owner: OwnerToken | None = None) -> TableLock:
        """
        Build a lock handle for `name`. When `owner` is omitted a random token
        is drawn once here; keep it (`lock.owner`) to release from elsewhere.
        """
        return TableLock(self, name, seconds, owner if owner is not None else nanoid())

    def restore_lock(self, name: str, owner: OwnerToken) -> TableLock:
        """Rebuild a handle for a lock previously acquired under `owner`."""
        return self.lock(name, 0, owner)

    # ---- Internals -----------------------------------------------------------

    async def _adjust(self, op: str, key: str, delta: Number) -> Number | None:
        try:
            out = await self._call(
                "update_row",
                self._client.update_row(
                    self.table,
                    self._pk(key),
                    increment={self.value_attribute: delta},
                    condition=Condition(RowExistence.EXPECT_EXIST),
                ),
            )
        except ConditionCheckFailed:
            self._log.debug(f"cache.{op}.not_found", event=f"cache.{op}.not_found", table=self.table, key=key)
            self.metrics.cache(op, "not_found")
            return None
        self.metrics.cache(op, "ok")
        return out[self.value_attribute]

    async def _call(self, op: str, pending: Awaitable[_T]) -> _T:
        with self.metrics.timed(op):
            try:
                return await pending
            except ConditionCheckFailed:
                raise
            except TableError as e:
                self._log.error(
                    "store call failed",
                    event="store.call.failed",
                    op=op,
                    table=self.table,
                    code=e.code,
                )
                raise

    def _set_prefix(self, prefix: str) -> None:
        self._prefix = "" if prefix == "" else prefix + PREFIX_SEPARATOR
        self._prefix_length = len(self._prefix)

    def _pk(self, key: str) -> PrimaryKey:
        return (self.key_attribute, self._prefix + key)

    def _pure(self, key: str) -> str:
        return key[self._prefix_length :]

    def _now(self) -> TimestampMs:
        return self.clock.now_ms()

    def _expires_at(self, seconds: int, *, now: TimestampMs | None = None) -> TimestampMs:
        now = self._now() if now is None else now
        return now + int(seconds * 1000) if seconds > 0 else now

    def _live_filter(self, now: TimestampMs) -> ColumnCondition:
        # Rows without an expiration are never live.
        return ColumnCondition(self.expiration_attribute, Comparator.GREATER_THAN, now, filter_if_missing=True)

    def _attributes(self, value: Any, expiration: TimestampMs) -> dict[str, Any]:
        return {
            self.value_attribute: self.codec.encode(value),
            self.expiration_attribute: expiration,
        }
