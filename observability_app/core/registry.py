"""The metric registry: every metric the service exposes, by name.

A Registry is created explicitly (one per application, see
``create_app``) and passed to whoever needs it.  We never use
prometheus_client's global ``REGISTRY``: a fresh registry per test means
assertions can check exact values instead of before/after deltas.

Under the hood it wraps a prometheus_client ``CollectorRegistry``.  That
gives us two things for free:

  - exposition: ``generate_latest()`` renders any collector into the
    Prometheus text format, so our own metrics and the library's
    process/platform/GC collectors end up in one scrape
  - collision detection across *exposed* names: a histogram named
    ``foo`` also owns ``foo_bucket``, ``foo_sum`` and ``foo_count``;
    registering a gauge called ``foo_count`` afterwards is rejected
"""

from __future__ import annotations

import logging
import threading

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from observability_app.core.errors import DuplicateNameError
from observability_app.core.instruments import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)

AnyMetric = Counter | Gauge | Histogram


class Registry:
    """Name-unique collection of metrics for the lifetime of the process."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self) -> None:
        self._collectors = CollectorRegistry(auto_describe=True)
        self._metrics: dict[str, AnyMetric] = {}
        # Registration happens at startup only; metric updates never take this lock.
        self._lock = threading.Lock()

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def names(self) -> list[str]:
        return list(self._metrics)

    def get(self, name: str) -> AnyMetric | None:
        return self._metrics.get(name)

    def register(self, metric: AnyMetric) -> AnyMetric:
        """Add ``metric``; raise DuplicateNameError if its name is taken.

        The registry is unchanged when registration fails.
        """
        with self._lock:
            if metric.name in self._metrics:
                raise DuplicateNameError(f"Metric already registered: {metric.name!r}")
            try:
                self._collectors.register(metric)
            except ValueError as exc:
                # CollectorRegistry reports "Duplicated timeseries ..." as ValueError
                raise DuplicateNameError(str(exc)) from exc
            self._metrics[metric.name] = metric

        logger.debug("Registered %s %s", metric.kind, metric.name)
        return metric

    def register_default_collectors(self, *, namespace: str = "") -> None:
        """Add prometheus_client's process, platform and GC collectors.

        CPU seconds, resident memory and open file descriptors (Linux only,
        read from /proc), the Python version, and garbage-collector
        statistics.  ``namespace`` prefixes the process metrics
        (``myapp_process_cpu_seconds_total``).  Each collector registers
        itself into the wrapped CollectorRegistry; the GC collector does
        nothing on interpreters without ``gc.get_stats``.
        """
        with self._lock:
            try:
                ProcessCollector(namespace=namespace, registry=self._collectors)
                PlatformCollector(registry=self._collectors)
                GCCollector(registry=self._collectors)
            except ValueError as exc:
                raise DuplicateNameError(str(exc)) from exc

        logger.debug("Default process/platform/gc collectors registered")

    def snapshot(self) -> str:
        """Render every registered metric in Prometheus text format."""
        return generate_latest(self._collectors).decode("utf-8")

    def sample_value(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of one exposed sample, or None if it doesn't exist.

        ``name`` is the exposed sample name, e.g. ``http_requests_total``
        or ``http_request_duration_seconds_count``.
        """
        return self._collectors.get_sample_value(name, labels or {})
