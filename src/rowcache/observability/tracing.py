from __future__ import annotations

"""
rowcache.observability.tracing
==============================

OpenTelemetry instrumentation.

- `setup_tracing()` configures a service-wide SDK tracer provider.
- `trace()` decorator annotates functions with spans. Without a configured
  provider the OpenTelemetry API hands out non-recording spans, so the
  decorator is always safe to apply.

Usage:
    setup_tracing(service_name="billing-api", exporter=ConsoleSpanExporter())

    @trace("rowcache.get")
    async def get(self, key): ...
"""

import functools
import inspect
from typing import Any, Callable, TypeVar, cast

from opentelemetry import trace as _otel_trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from ..core.log import get_logger

__all__ = ["setup_tracing", "trace"]

_log = get_logger("observability.tracing")
_F = TypeVar("_F", bound=Callable[..., Any])
_TRACER_NAME = "rowcache"


def setup_tracing(*, service_name: str, exporter: SpanExporter | None = None) -> TracerProvider:
    """
    Configure OpenTelemetry tracing (global tracer provider).

    Args:
        service_name: logical service name for resources.
        exporter: span exporter to attach via a batch processor; if None,
                  spans are recorded but not exported.

    Notes:
        - OpenTelemetry allows setting the global provider only once per
          process; later calls return the new provider without installing it.
    """
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    _otel_trace.set_tracer_provider(provider)
    _log.info("otel tracing configured", service_name=service_name, exporter=type(exporter).__name__ if exporter else None)
    return provider


def trace(name: str) -> Callable[[_F], _F]:
    """
    Decorator to trace function execution with a span named `name`.

    Works with both sync and async callables. The tracer is resolved per call
    so a provider installed after import is honored.
    """

    def _decorator(func: _F) -> _F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def _aw(*args: Any, **kwargs: Any):
                with _otel_trace.get_tracer(_TRACER_NAME).start_as_current_span(name):
                    return await func(*args, **kwargs)

            return cast(_F, _aw)

        @functools.wraps(func)
        def _sw(*args: Any, **kwargs: Any):
            with _otel_trace.get_tracer(_TRACER_NAME).start_as_current_span(name):
                return func(*args, **kwargs)

        return cast(_F, _sw)

    return _decorator
