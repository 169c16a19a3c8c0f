from __future__ import annotations

"""
rowcache.core.log
=================

Structured logging for the cache layer, built on the standard `logging` module.

Every record may carry cache fields (`table`, `key`, `lock`, `owner`, `op`,
`code`) passed as plain keyword arguments to the adapter returned by
`get_logger`. Fields bound with `log_context` (e.g. by `TableLock.run`) are
attached to every record emitted inside the block.

The `rowcache` logger holds only a NullHandler until an application calls
`enable_stdout_logging()` or `configure_from_env()`.
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, ClassVar, Final

__all__ = [
    "configure_from_env",
    "disable_stdout_logging",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
]

_ROOT: Final[str] = "rowcache"
_HANDLER_NAME: Final[str] = "_rowcache_stdout_handler"

# Fields shown inline by the human formatter, in this order.
_INLINE_FIELDS: Final[tuple[str, ...]] = ("table", "key", "lock", "owner")

_fields: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar("rowcache_log_fields", default=None)

# Attributes every LogRecord has; anything else on a record came from `extra`.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


@contextmanager
def log_context(**fields: Any):
    """Attach `fields` (None values dropped) to records logged inside the block."""
    current = _fields.get() or {}
    token = _fields.set({**current, **{k: v for k, v in fields.items() if v is not None}})
    try:
        yield
    finally:
        _fields.reset(token)


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    out = dict(_fields.get() or {})
    out.update((k, v) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS)
    return out


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, then context and keyword fields."""

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")
        out: dict[str, Any] = {
            "ts": ts.replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for k, v in _record_fields(record).items():
            out.setdefault(k, v)

        if record.exc_info and record.exc_info[0] is not None:
            error = {"type": record.exc_info[0].__name__, "message": str(record.exc_info[1])}
            if self.include_stack:
                error["stack"] = self.formatException(record.exc_info)
            out["error"] = error

        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """`<time> <LEVEL> <logger>: <message>  [table=.., key=..]` for local debugging."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        fields = _record_fields(record)
        inline = [f"{k}={fields[k]}" for k in _INLINE_FIELDS if fields.get(k) is not None]
        if inline:
            line += "  [" + ", ".join(inline) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _KwExtraAdapter(logging.LoggerAdapter):
    """
    Moves keyword arguments into `extra` so call sites read
        log.debug("cache.add", event="cache.add", key=key, applied=False)
    Names that clash with LogRecord attributes are stored as `field_<name>`.
    Fields bound by `log_context` are added unless the call passes its own.
    """

    _passthrough: ClassVar[frozenset[str]] = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra")
        extra = dict(extra) if isinstance(extra, dict) else {}
        for k in [k for k in kwargs if k not in self._passthrough]:
            name = f"field_{k}" if k in _RECORD_ATTRS else k
            extra.setdefault(name, kwargs.pop(k))
        for k, v in (_fields.get() or {}).items():
            if k not in _RECORD_ATTRS:
                extra.setdefault(k, v)
        kwargs["extra"] = extra
        return msg, kwargs


def _root() -> logging.Logger:
    lg = logging.getLogger(_ROOT)
    if not any(isinstance(h, logging.NullHandler) for h in lg.handlers):
        lg.setLevel(logging.INFO)
        lg.addHandler(logging.NullHandler())
    return lg


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    """Keyword-friendly adapter for `rowcache` or `rowcache.<name>`."""
    base = _root()
    return _KwExtraAdapter(base.getChild(name) if name else base, {})


def _level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Invalid level name: {level!r}")
    return resolved


def enable_stdout_logging(
    *,
    level: int | str = logging.DEBUG,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
) -> None:
    """Replace any previously installed stdout handler with a fresh one."""
    lvl = _level(level)
    lg = _root()
    if lg.level > lvl:
        lg.setLevel(lvl)
    disable_stdout_logging()

    fmt: logging.Formatter
    if pretty:
        fmt = HumanFormatter()
    elif json_output:
        fmt = JsonFormatter(include_stack=include_stack)
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(lvl)
    handler.setFormatter(fmt)
    lg.addHandler(handler)


def disable_stdout_logging() -> None:
    lg = logging.getLogger(_ROOT)
    for h in [h for h in lg.handlers if h.get_name() == _HANDLER_NAME]:
        lg.removeHandler(h)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    Apply logging settings from the environment:
      - ROWCACHE_LOG_LEVEL=DEBUG|INFO|...  (default INFO)
      - ROWCACHE_LOG_STDOUT=1              attach a stdout handler
      - ROWCACHE_LOG_PRETTY=1              human lines instead of JSON
      - ROWCACHE_LOG_STACK=1               tracebacks in JSON records
    """
    level = _level(os.getenv("ROWCACHE_LOG_LEVEL", "INFO"))
    _root().setLevel(level)
    if not _env_flag("ROWCACHE_LOG_STDOUT"):
        disable_stdout_logging()
        return
    pretty = _env_flag("ROWCACHE_LOG_PRETTY")
    enable_stdout_logging(
        level=level,
        json_output=not pretty,
        include_stack=_env_flag("ROWCACHE_LOG_STACK"),
        pretty=pretty,
    )
