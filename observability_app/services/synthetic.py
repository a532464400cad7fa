"""Synthetic endpoint behavior: the traffic shapes dashboards need.

A metrics pipeline is hard to test against a service that always
answers 200 in 2ms.  These handlers produce the other shapes:

  root   : instant success
  slow   : 99% of calls sleep 3-9 seconds then succeed (latency tail),
           1% fail immediately (a low, steady error rate)
  fail   : always 500 (an error rate you can alert on)

Randomness and sleeping are INJECTED.  Production passes random.Random()
and asyncio.sleep; tests pass a scripted random source and a sleep that
returns immediately, so "force the 1% branch" is one line instead of a
flaky statistical test.

ERROR METRICS BEFORE THE EXCEPTION
------------------------------------
``fail()`` increments the error counter and gauge first, THEN raises
HandlerFailure.  The MetricsMiddleware only records totals and latency;
the error series are owned by the handler, so they are already counted
by the time anything else runs.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import NoReturn, Protocol

from observability_app.core.errors import HandlerFailure
from observability_app.core.metrics import HttpMetrics, RequestLabels

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to the Observability App"
SLOW_MESSAGE = "Slow url accessed !!"
FAILURE_MESSAGE = "Internal Error"

# One draw in [0, 100) equal to zero: a 1% failure rate.
SLOW_FAILURE_ODDS = 100
SLOW_MIN_DELAY_SECONDS = 3
SLOW_MAX_DELAY_SECONDS = 9


class RandomSource(Protocol):
    """The subset of random.Random the handlers use."""

    def randrange(self, stop: int) -> int: ...
    def randint(self, a: int, b: int) -> int: ...


SleepFunc = Callable[[float], Awaitable[None]]


def root() -> str:
    return WELCOME_MESSAGE


def fail(metrics: HttpMetrics, labels: RequestLabels) -> NoReturn:
    """Record the error metrics, then raise HandlerFailure."""
    metrics.record_error(labels)
    logger.warning("Simulated failure on %s %s", labels.method, labels.route)
    raise HandlerFailure(FAILURE_MESSAGE)


async def slow(
    metrics: HttpMetrics,
    labels: RequestLabels,
    rng: RandomSource,
    sleep: SleepFunc,
) -> str:
    """Fail 1% of the time; otherwise wait 3-9 seconds and succeed."""
    if rng.randrange(SLOW_FAILURE_ODDS) == 0:
        fail(metrics, labels)

    delay = rng.randint(SLOW_MIN_DELAY_SECONDS, SLOW_MAX_DELAY_SECONDS)
    logger.debug("Slow endpoint sleeping %ds", delay)
    await sleep(delay)
    return SLOW_MESSAGE
