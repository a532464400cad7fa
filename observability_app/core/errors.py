"""Exception types for the metrics layer and the synthetic endpoints.

Two families live here, and they are handled very differently:

  MetricsError and its subclasses are PROGRAMMING errors.  A duplicate
  metric name, a negative counter increment, a timer stopped twice, or
  an observation with the wrong label keys all mean the code is wrong.
  They are never caught by the service; they fail loudly (at startup,
  in the case of registration) so the mistake is fixed, not hidden.

  HandlerFailure is an EXPECTED failure.  The /slow and /error endpoints
  raise it on purpose to produce 500s for dashboards and alerts.  The
  MetricsMiddleware catches it and turns it into a 500 response; the
  process keeps serving.
"""

from __future__ import annotations


class MetricsError(Exception):
    """Base class for misuse of the metrics layer."""


class DuplicateNameError(MetricsError):
    """A metric (or one of its exposed series) is already registered."""


class InvalidOperationError(MetricsError):
    """An update the metric type does not allow, e.g. decrementing a counter."""


class TimerAlreadyStoppedError(MetricsError):
    """Timer.stop() was called on a timer that already recorded."""


class LabelMismatchError(MetricsError, ValueError):
    """Observation labels don't match the metric's declared label names."""


class HandlerFailure(Exception):
    """Raised by a route handler to signal a (simulated) internal error.

    The handler records its error metrics BEFORE raising, so the error
    counters are correct even if the middleware never finalizes.
    """

    def __init__(self, message: str = "Internal Error") -> None:
        super().__init__(message)
        self.message = message
