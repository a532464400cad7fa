"""Counter, Gauge and Histogram: the typed metrics of this service.

Each metric is a prometheus_client *collector*: it has a ``collect()``
method that yields a MetricFamily, so the registry can hand it straight
to ``generate_latest()`` for the text exposition format.  We keep our own
storage (rather than using prometheus_client.Counter etc.) because the
metrics layer has stricter rules than the client library:

  - label names are a fixed, ordered schema declared once; every
    observation must supply exactly those keys (LabelMismatchError)
  - a negative counter increment is an InvalidOperationError
  - a histogram timer can be stopped only once (TimerAlreadyStoppedError)

CONCURRENCY
------------
Every label combination ("series") owns a threading.Lock, and every
update to that series' numbers happens under it.  Two requests
incrementing the same series never lose an update; two requests
touching DIFFERENT series (or different metrics) never wait on each
other.  The per-metric lock only guards creating a new series and
copying the series table for a scrape.
"""

from __future__ import annotations

import math
import re
import threading
import time
from collections.abc import Iterator, Mapping, Sequence
from typing import ClassVar

from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric,
)
from prometheus_client.utils import floatToGoString

from observability_app.core.errors import (
    InvalidOperationError,
    LabelMismatchError,
    TimerAlreadyStoppedError,
)

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

LabelValues = Mapping[str, object]


class _ValueSeries:
    """A single number guarded by its own lock."""

    __slots__ = ("_lock", "_value")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0

    def inc(self, amount: float) -> None:
        with self._lock:
            self._value += amount

    def set(self, value: float) -> None:
        with self._lock:
            self._value = value

    def get(self) -> float:
        with self._lock:
            return self._value


class _HistogramSeries:
    """Cumulative bucket counts + sum + count for one label combination."""

    __slots__ = ("_lock", "_bounds", "_buckets", "_sum", "_count")

    def __init__(self, bounds: tuple[float, ...]) -> None:
        self._lock = threading.Lock()
        self._bounds = bounds
        self._buckets = [0] * len(bounds)
        self._sum = 0.0
        self._count = 0

    def observe(self, value: float) -> None:
        with self._lock:
            for i, bound in enumerate(self._bounds):
                if value <= bound:
                    self._buckets[i] += 1
            self._sum += value
            self._count += 1

    def get(self) -> tuple[list[int], float, int]:
        with self._lock:
            return list(self._buckets), self._sum, self._count


class _LabeledMetric:
    """Shared plumbing: name/label validation and the series table."""

    kind: ClassVar[str]

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Sequence[str] = (),
    ) -> None:
        if not _METRIC_NAME_RE.match(name):
            raise ValueError(f"Invalid metric name: {name!r}")
        labelnames = tuple(labelnames)
        for label in labelnames:
            if not _LABEL_NAME_RE.match(label) or label.startswith("__"):
                raise ValueError(f"Invalid label name: {label!r}")
        if len(set(labelnames)) != len(labelnames):
            raise ValueError(f"Duplicate label names in {labelnames!r}")

        self.name = name
        self.documentation = documentation
        self.labelnames: tuple[str, ...] = labelnames
        self._lock = threading.Lock()
        self._series: dict[tuple[str, ...], object] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, labelnames={self.labelnames!r})"

    def _label_values(self, labels: LabelValues | None) -> tuple[str, ...]:
        labels = labels or {}
        if len(labels) != len(self.labelnames) or set(labels) != set(self.labelnames):
            missing = sorted(set(self.labelnames) - set(labels))
            extra = sorted(set(labels) - set(self.labelnames))
            raise LabelMismatchError(
                f"{self.name}: expected labels {list(self.labelnames)}"
                f" (missing={missing}, unexpected={extra})"
            )
        return tuple(str(labels[key]) for key in self.labelnames)

    def _new_series(self) -> object:
        raise NotImplementedError

    def _series_for(self, labels: LabelValues | None) -> object:
        key = self._label_values(labels)
        series = self._series.get(key)
        if series is None:
            with self._lock:
                series = self._series.get(key)
                if series is None:
                    series = self._new_series()
                    self._series[key] = series
        return series

    def _items(self) -> list[tuple[tuple[str, ...], object]]:
        with self._lock:
            return sorted(self._series.items(), key=lambda item: item[0])

    # -- prometheus_client collector protocol ------------------------------

    def _family(self) -> Metric:
        raise NotImplementedError

    def _add_sample(self, family: Metric, key: tuple[str, ...], series: object) -> None:
        raise NotImplementedError

    def describe(self) -> Iterator[Metric]:
        # An empty family is enough for the registry to learn our names.
        yield self._family()

    def collect(self) -> Iterator[Metric]:
        family = self._family()
        for key, series in self._items():
            self._add_sample(family, key, series)
        yield family


class Counter(_LabeledMetric):
    """Monotonically increasing value per label combination."""

    kind = "counter"

    def _new_series(self) -> _ValueSeries:
        return _ValueSeries()

    def inc(self, labels: LabelValues | None = None, amount: float = 1) -> None:
        if amount < 0:
            raise InvalidOperationError(
                f"{self.name}: counters can only increase (got amount={amount})"
            )
        self._series_for(labels).inc(amount)  # type: ignore[attr-defined]

    def value(self, labels: LabelValues | None = None) -> float:
        series = self._series.get(self._label_values(labels))
        return series.get() if series is not None else 0.0  # type: ignore[attr-defined]

    def _family(self) -> CounterMetricFamily:
        return CounterMetricFamily(self.name, self.documentation, labels=self.labelnames)

    def _add_sample(self, family, key, series) -> None:
        family.add_metric(list(key), series.get())


class Gauge(_LabeledMetric):
    """Value per label combination that may go up or down."""

    kind = "gauge"

    def _new_series(self) -> _ValueSeries:
        return _ValueSeries()

    def inc(self, labels: LabelValues | None = None, amount: float = 1) -> None:
        self._series_for(labels).inc(amount)  # type: ignore[attr-defined]

    def dec(self, labels: LabelValues | None = None, amount: float = 1) -> None:
        self._series_for(labels).inc(-amount)  # type: ignore[attr-defined]

    def set(self, labels: LabelValues | None, value: float) -> None:
        self._series_for(labels).set(value)  # type: ignore[attr-defined]

    def value(self, labels: LabelValues | None = None) -> float:
        series = self._series.get(self._label_values(labels))
        return series.get() if series is not None else 0.0  # type: ignore[attr-defined]

    def _family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.name, self.documentation, labels=self.labelnames)

    def _add_sample(self, family, key, series) -> None:
        family.add_metric(list(key), series.get())


class Histogram(_LabeledMetric):
    """Distribution of observed values over fixed cumulative buckets.

    Buckets are "less than or equal": an observation of 0.4 against
    bounds [0.1, 0.3, 0.5, 1] increments the 0.5 and 1 buckets.  The
    +Inf bucket is not stored; it always equals the count and is added
    when the histogram is exposed.
    """

    kind = "histogram"

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Sequence[str] = (),
        *,
        buckets: Sequence[float],
    ) -> None:
        super().__init__(name, documentation, labelnames)
        if "le" in self.labelnames:
            raise ValueError("'le' is reserved for histogram buckets")
        bounds = tuple(float(b) for b in buckets)
        if not bounds:
            raise ValueError(f"{name}: at least one bucket is required")
        if any(math.isinf(b) or math.isnan(b) for b in bounds):
            raise ValueError(f"{name}: bucket bounds must be finite")
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError(f"{name}: buckets must be strictly ascending")
        self.buckets: tuple[float, ...] = bounds

    def _new_series(self) -> _HistogramSeries:
        return _HistogramSeries(self.buckets)

    def observe(self, labels: LabelValues | None, value: float) -> None:
        self._series_for(labels).observe(value)  # type: ignore[attr-defined]

    def start_timer(self) -> Timer:
        return Timer(self)

    def bucket_counts(self, labels: LabelValues | None = None) -> dict[float, int]:
        """Current cumulative count per bucket bound (zeros if unobserved)."""
        series = self._series.get(self._label_values(labels))
        if series is None:
            return dict.fromkeys(self.buckets, 0)
        counts, _, _ = series.get()  # type: ignore[attr-defined]
        return dict(zip(self.buckets, counts))

    def _family(self) -> HistogramMetricFamily:
        return HistogramMetricFamily(
            self.name, self.documentation, labels=self.labelnames
        )

    def _add_sample(self, family, key, series) -> None:
        counts, total, count = series.get()
        buckets = [(floatToGoString(b), c) for b, c in zip(self.buckets, counts)]
        buckets.append(("+Inf", count))
        family.add_metric(list(key), buckets, total)


class Timer:
    """Measures one duration and records it into a histogram, once.

    The timer does not know its labels until ``stop()``: a request's
    status code is only known after the handler has run.
    """

    __slots__ = ("_histogram", "_start", "_stopped")

    def __init__(self, histogram: Histogram) -> None:
        self._histogram = histogram
        self._start = time.monotonic()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self, labels: LabelValues | None = None) -> float:
        """Observe the elapsed seconds with ``labels`` and return them."""
        if self._stopped:
            raise TimerAlreadyStoppedError(
                f"timer for {self._histogram.name} was already stopped"
            )
        elapsed = time.monotonic() - self._start
        # observe() validates labels first; a rejected stop leaves the timer usable.
        self._histogram.observe(labels, elapsed)
        self._stopped = True
        return elapsed
