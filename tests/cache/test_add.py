from __future__ import annotations

import asyncio

import pytest

from rowcache.storage.table import Comparator, ConditionCheckFailed, RowExistence
from tests.conftest import START_MS, TABLE

pytestmark = [pytest.mark.cache]


@pytest.mark.asyncio
async def test_add_creates_only_if_absent_or_expired(store, clock):
    assert await store.add("k", "v1", 10) is True
    assert await store.add("k", "v2", 10) is False
    assert await store.get("k") == "v1"

    await clock.sleep_ms(10_000)
    assert await store.add("k", "v3", 10) is True
    assert await store.get("k") == "v3"


@pytest.mark.asyncio
async def test_add_replaces_row_without_expiration(store, table):
    """A row missing the expiration column passes the add predicate."""
    table.seed(TABLE, ("key", "app:k"), {"value": 1})
    assert await store.add("k", "fresh", 10) is True
    assert await store.get("k") == "fresh"


@pytest.mark.asyncio
async def test_add_is_a_single_conditional_put(store, table):
    seen = []
    original = table.put_row

    async def spy(tbl, key, attributes, *, condition=None):
        seen.append(condition)
        return await original(tbl, key, attributes, condition=condition)

    table.put_row = spy
    await store.add("k", "v", 5)

    assert table.calls == {"put_row": 1}
    (cond,) = seen
    assert cond.existence is RowExistence.IGNORE
    assert cond.column.column == "expires_at"
    assert cond.column.comparator is Comparator.LESS_EQUAL
    assert cond.column.value == START_MS
    assert cond.column.filter_if_missing is False


@pytest.mark.asyncio
async def test_add_with_zero_ttl_can_be_added_again(store):
    assert await store.add("k", "a", 0) is True
    assert await store.add("k", "b", 0) is True


@pytest.mark.asyncio
async def test_concurrent_adds_have_exactly_one_winner(store):
    results = await asyncio.gather(*(store.add("race", i, 30) for i in range(20)))

    assert results.count(True) == 1
    winner = results.index(True)
    assert await store.get("race") == winner


@pytest.mark.asyncio
async def test_add_condition_failure_is_not_an_exception(store, table, registry):
    await store.add("k", 1, 60)
    table.fail_next("put_row", ConditionCheckFailed())

    assert await store.add("other", 1, 60) is False
    assert registry.get_sample_value("rowcache_cache_ops_total", {"op": "add", "result": "not_applied"}) == 1
    assert registry.get_sample_value("rowcache_cache_ops_total", {"op": "add", "result": "applied"}) == 1
