from __future__ import annotations

"""
rowcache.observability.metrics
==============================

Prometheus metrics for cache and lock verbs.

Features:
- Helpers to create low-cardinality, label-validated metrics (SafeCounter/Histogram).
- `CacheMetrics`: the metric set a store reports into, bound to one registry.
- `default_metrics()`: process-wide instance on the global registry.

Metric names are registered once per registry; build a `CacheMetrics` on a
fresh `CollectorRegistry` for isolated tests.
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Sequence

import prometheus_client as _prom

__all__ = [
    "CacheMetrics",
    "SafeCounter",
    "SafeHistogram",
    "default_metrics",
]


# ---- Safe metric wrappers ----------------------------------------------------


class _LabelChecker:
    """Validate label names against an allowlist to keep cardinality under control."""

    __slots__ = ("_allowed",)

    def __init__(self, allowed: Iterable[str] | None) -> None:
        self._allowed = frozenset(allowed or ())

    def validate(self, labels: Mapping[str, str]) -> None:
        if not self._allowed:
            return
        unknown = [k for k in labels.keys() if k not in self._allowed]
        if unknown:
            raise ValueError(f"Unknown label(s) for metric: {unknown}; allowed={sorted(self._allowed)}")


class SafeCounter:
    """
    Counter wrapper that validates label names against an allowlist.

    Example:
        cnt = SafeCounter("rowcache_cache_ops_total", "Cache verbs", label_names=["op", "result"])
        cnt.labels(op="get", result="hit").inc()
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str] | None = None,
        registry: Any | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names or [])
        reg = registry or _prom.REGISTRY
        self._metric = _prom.Counter(name, documentation, labelnames=list(label_names or []), registry=reg)

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


class SafeHistogram:
    """
    Histogram wrapper that validates label names against an allowlist.

    Args:
        buckets: optional custom buckets. If omitted, prometheus_client defaults are used.
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str] | None = None,
        registry: Any | None = None,
        buckets: Sequence[float] | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names or [])
        reg = registry or _prom.REGISTRY
        self._metric = _prom.Histogram(
            name,
            documentation,
            labelnames=list(label_names or []),
            registry=reg,
            buckets=list(buckets) if buckets is not None else _prom.Histogram.DEFAULT_BUCKETS,
        )

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


# ---- Cache metric set --------------------------------------------------------


class CacheMetrics:
    """
    Counters and latency for cache and lock verbs.

    Results used by the store: hit, miss, ok, applied, not_applied, not_found,
    released, not_released, error.
    """

    def __init__(self, registry: Any | None = None) -> None:
        self.registry = registry or _prom.REGISTRY
        self.cache_ops = SafeCounter(
            "rowcache_cache_ops_total",
            "Cache verbs by outcome",
            label_names=["op", "result"],
            registry=self.registry,
        )
        self.lock_ops = SafeCounter(
            "rowcache_lock_ops_total",
            "Lock verbs by outcome",
            label_names=["op", "result"],
            registry=self.registry,
        )
        self.store_call_seconds = SafeHistogram(
            "rowcache_store_call_seconds",
            "Latency of store round trips",
            label_names=["op"],
            registry=self.registry,
        )

    def cache(self, op: str, result: str, n: int = 1) -> None:
        self.cache_ops.labels(op=op, result=result).inc(n)

    def lock(self, op: str, result: str) -> None:
        self.lock_ops.labels(op=op, result=result).inc()

    @contextmanager
    def timed(self, op: str) -> Iterator[None]:
        """Observe the wall time of one store round trip; failures are observed too."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.store_call_seconds.labels(op=op).observe(time.perf_counter() - start)


_default: CacheMetrics | None = None
_default_lock = threading.Lock()


def default_metrics() -> CacheMetrics:
    """Return the process-wide metric set registered on the global registry."""
    global _default
    with _default_lock:
        if _default is None:
            _default = CacheMetrics()
        return _default
