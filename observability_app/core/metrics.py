"""The service's metric inventory.

All HTTP metrics are declared here, in one place, and registered into an
explicitly passed Registry by ``build_http_metrics()``.  Handlers and the
MetricsMiddleware receive the resulting HttpMetrics bundle; nothing reads
a module-level metric.

EVERY HTTP METRIC SHARES ONE LABEL SCHEMA
-------------------------------------------
  method : HTTP method ("GET")
  route  : the DECLARED route pattern ("/slow"), never the raw URL.
           Raw paths would create one series per distinct URL a client
           invents (/slow?x=1, /slow/../slow, ...), and an unbounded
           number of series is how a metrics backend falls over.
  code   : final HTTP status code as a string ("200", "500")

WHY A COUNTER AND A GAUGE FOR THE SAME THING
----------------------------------------------
http_requests_total and http_requests_total_gauge count the same events.
The counter is what you should query (rate() handles restarts); the
gauge exists so dashboards and alert rules built for gauges have
something realistic to chart.  Same for the error pair.
"""

from __future__ import annotations

from dataclasses import dataclass

from observability_app.core.instruments import Counter, Gauge, Histogram
from observability_app.core.registry import Registry

REQUEST_LABELS = ("method", "route", "code")

# Seconds.  The synthetic /slow endpoint sleeps 3-9s, so the upper buckets matter.
REQUEST_DURATION_BUCKETS = (0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10)


@dataclass(frozen=True, slots=True)
class RequestLabels:
    """The labels known once a request is routed: everything except the code."""

    method: str
    route: str

    def with_code(self, code: int | str) -> dict[str, str]:
        return {"method": self.method, "route": self.route, "code": str(code)}


@dataclass(frozen=True, slots=True)
class HttpMetrics:
    request_duration: Histogram
    requests_total: Counter
    requests_error: Counter
    requests_total_gauge: Gauge
    requests_error_gauge: Gauge

    def record_request(self, labels: RequestLabels, code: int | str) -> None:
        """Count one finished request (any status)."""
        values = labels.with_code(code)
        self.requests_total.inc(values)
        self.requests_total_gauge.inc(values)

    def record_error(self, labels: RequestLabels) -> None:
        """Count one failed request; always code 500."""
        values = labels.with_code(500)
        self.requests_error.inc(values)
        self.requests_error_gauge.inc(values)


def build_http_metrics(registry: Registry) -> HttpMetrics:
    """Create the HTTP metrics and register them into ``registry``.

    Raises DuplicateNameError if any of them is already registered;
    that is a startup bug, so it is allowed to abort the process.
    """
    metrics = HttpMetrics(
        request_duration=Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            REQUEST_LABELS,
            buckets=REQUEST_DURATION_BUCKETS,
        ),
        requests_total=Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            REQUEST_LABELS,
        ),
        requests_error=Counter(
            "http_requests_error",
            "Total number of error HTTP requests",
            REQUEST_LABELS,
        ),
        requests_total_gauge=Gauge(
            "http_requests_total_gauge",
            "Total number of HTTP requests",
            REQUEST_LABELS,
        ),
        requests_error_gauge=Gauge(
            "http_requests_error_gauge",
            "Total number of error HTTP requests",
            REQUEST_LABELS,
        ),
    )
    registry.register(metrics.request_duration)
    registry.register(metrics.requests_total)
    registry.register(metrics.requests_error)
    registry.register(metrics.requests_total_gauge)
    registry.register(metrics.requests_error_gauge)
    return metrics
