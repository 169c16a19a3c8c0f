from __future__ import annotations

import json
import logging

import pytest

from rowcache.core.log import HumanFormatter, JsonFormatter, configure_from_env, get_logger, log_context

pytestmark = [pytest.mark.unit]


def test_keyword_fields_land_in_extra(caplog):
    log = get_logger("unit")
    with caplog.at_level(logging.DEBUG, logger="rowcache"):
        log.debug("cache.add.not_applied", event="cache.add.not_applied", key="k", name="clash")

    (rec,) = [r for r in caplog.records if r.getMessage() == "cache.add.not_applied"]
    assert rec.event == "cache.add.not_applied"
    assert rec.key == "k"
    # reserved LogRecord attributes are renamed
    assert rec.field_name == "clash"


def test_json_formatter_merges_context_and_extras():
    record = logging.LogRecord("rowcache.cache.store", logging.INFO, __file__, 1, "hello", None, None)
    record.op = "get_row"
    with log_context(table="cache", key=None):
        out = json.loads(JsonFormatter().format(record))

    assert out["message"] == "hello"
    assert out["level"] == "INFO"
    assert out["table"] == "cache"
    assert "key" not in out
    assert out["op"] == "get_row"
    assert out["ts"].endswith("Z")


def test_bound_fields_reach_child_logger_records(caplog):
    log = get_logger("cache.lock")
    with caplog.at_level(logging.INFO, logger="rowcache"), log_context(lock="deploy", owner="a"):
        log.info("inside", event="inside", owner="explicit")

    (rec,) = [r for r in caplog.records if r.getMessage() == "inside"]
    assert rec.lock == "deploy"
    # explicit keyword fields win over bound ones
    assert rec.owner == "explicit"


def test_human_formatter_shows_cache_fields_inline():
    record = logging.LogRecord("rowcache.cache.store", logging.WARNING, __file__, 1, "flush", None, None)
    record.table = "cache"
    record.key = "k"
    line = HumanFormatter().format(record)
    assert line.endswith("rowcache.cache.store: flush  [table=cache, key=k]")


def test_configure_from_env_rejects_unknown_level(monkeypatch):
    monkeypatch.setenv("ROWCACHE_LOG_LEVEL", "LOUD")
    with pytest.raises(ValueError, match="Invalid level name"):
        configure_from_env()
