from __future__ import annotations

import pytest
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from rowcache.observability.tracing import setup_tracing, trace

pytestmark = [pytest.mark.unit]


@pytest.fixture(scope="module")
def spans():
    exporter = InMemorySpanExporter()
    provider = setup_tracing(service_name="rowcache-tests")
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


@pytest.mark.asyncio
async def test_cache_verbs_run_inside_spans(spans, store):
    spans.clear()
    await store.put("k", 1, 60)
    await store.get("k")

    names = [s.name for s in spans.get_finished_spans()]
    assert names == ["rowcache.put", "rowcache.get"]


def test_sync_functions_are_traced(spans):
    spans.clear()

    @trace("unit.sync")
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
    assert add.__name__ == "add"
    assert [s.name for s in spans.get_finished_spans()] == ["unit.sync"]
