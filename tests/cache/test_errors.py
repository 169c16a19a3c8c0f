from __future__ import annotations

import pytest

from rowcache.errors import ValueDecodeError
from rowcache.storage.table import CONDITION_CHECK_FAIL, ConditionCheckFailed, TableError
from tests.conftest import TABLE

pytestmark = [pytest.mark.cache]

BUSY = TableError("OTSServerBusy", "Server is busy.")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, call",
    [
        ("get_row", lambda s: s.get("k")),
        ("batch_get_row", lambda s: s.many(["k", "j"])),
        ("put_row", lambda s: s.put("k", 1, 60)),
        ("put_row", lambda s: s.add("k", 1, 60)),
        ("batch_write_row", lambda s: s.put_many({"k": 1}, 60)),
        ("update_row", lambda s: s.increment("k")),
        ("update_row", lambda s: s.decrement("k")),
        ("delete_row", lambda s: s.forget("k")),
    ],
)
async def test_store_failures_propagate_unchanged(store, table, method, call):
    """Transport/server errors are never mistaken for a miss or a failed condition."""
    await store.put("k", 1, 60)
    table.fail_next(method, BUSY)

    with pytest.raises(TableError) as ei:
        await call(store)

    assert ei.value is BUSY
    assert not isinstance(ei.value, ConditionCheckFailed)


@pytest.mark.asyncio
async def test_store_failure_is_logged_and_timed(store, table, registry, caplog):
    table.fail_next("get_row", BUSY)
    with caplog.at_level("ERROR", logger="rowcache"):
        with pytest.raises(TableError):
            await store.get("k")

    (record,) = [r for r in caplog.records if getattr(r, "event", None) == "store.call.failed"]
    assert record.code == "OTSServerBusy"
    assert record.op == "get_row"
    assert registry.get_sample_value("rowcache_store_call_seconds_count", {"op": "get_row"}) == 1


@pytest.mark.asyncio
async def test_condition_failure_has_the_single_store_code(store, table):
    table.fail_next("update_row", ConditionCheckFailed())
    assert await store.decrement("k") is None
    assert ConditionCheckFailed().code == CONDITION_CHECK_FAIL


@pytest.mark.asyncio
async def test_unexpected_stored_kind_fails_loudly(store, table):
    table.seed(TABLE, ("key", "app:k"), {"value": "plain string", "expires_at": 2**62})
    with pytest.raises(ValueDecodeError, match=r"Unexpected type \[str\]"):
        await store.get("k")


@pytest.mark.asyncio
async def test_read_metrics(store, registry):
    await store.put("a", 1, 60)
    await store.get("a")
    await store.get("b")
    await store.many(["a", "b", "c"])

    def sample(op, result):
        return registry.get_sample_value("rowcache_cache_ops_total", {"op": op, "result": result})

    assert sample("get", "hit") == 1
    assert sample("get", "miss") == 1
    assert sample("many", "hit") == 1
    assert sample("many", "miss") == 2
