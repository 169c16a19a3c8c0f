# conftest.py
from __future__ import annotations

import os
import uuid

import pytest
from prometheus_client import CollectorRegistry

from rowcache.cache import CacheStore
from rowcache.core.log import (
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)
from rowcache.core.time import ManualClock
from rowcache.observability.metrics import CacheMetrics
from tests.helpers import InMemTable

TABLE = "cache"
START_MS = 1_700_000_000_000


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without a store")
    config.addinivalue_line("markers", "cache: cache verb behaviour against the in-memory table")
    config.addinivalue_line("markers", "lock: distributed lock behaviour")


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit rowcache logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_rowcache_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    if os.getenv("ROWCACHE_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(
            level="DEBUG",
            json_output=prefer_json,
            pretty=not prefer_json,
        )


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(pytest_nodeid=request.node.nodeid, test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.fixture
def clock():
    return ManualClock(start_ms=START_MS)


@pytest.fixture
def table():
    """Single injection point for the store."""
    return InMemTable()


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return CacheMetrics(registry)


@pytest.fixture
def make_store(table, clock, metrics):
    def _make(**kwargs) -> CacheStore:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("metrics", metrics)
        return CacheStore(table, TABLE, **kwargs)

    return _make


@pytest.fixture
def store(make_store):
    return make_store(prefix="app")
