"""Request instrumentation: time, count and label every request.

Per request the middleware walks one state machine:

  START       start a histogram timer
  DISPATCHED  call the app; the router resolves the route and puts it
              in the request scope before dependencies and the handler run
  SUCCEEDED   code = response.status_code
  FAILED      handler raised HandlerFailure → code = 500, and the
              failure becomes a plain-text 500 response
  RECORDED    stop the timer with {method, route, code}; increment
              http_requests_total and http_requests_total_gauge

RECORDED runs in ``finally``, so every instrumented request stops
exactly one timer and adds exactly one total-count observation, whatever
the handler did.  Error counters are NOT touched here: the handler that
fails records them itself (see services/synthetic.py), which keeps the
count at most one per request.

ROUTE, NOT PATH
----------------
The route label is the pattern of the route the router matched
(``scope["route"].path``), read once the request has been routed.  That
works the same whether a route was declared on the app or on an included
router with a prefix.  Requests that reach no declared route (404s,
probes for /wp-admin) are passed through uninstrumented; labeling them
by raw path would let any client create new series at will.

Unlike many setups, /metrics is instrumented too: a scrape is a request
like any other, and its latency shows up next to the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from observability_app.core.errors import HandlerFailure
from observability_app.core.metrics import HttpMetrics, RequestLabels

logger = logging.getLogger(__name__)


def resolve_route(scope: Mapping[str, Any]) -> str | None:
    """Return the declared path pattern the router matched, if any."""
    return getattr(scope.get("route"), "path", None)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Instrument every routed request with the app's HttpMetrics."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        metrics: HttpMetrics = request.app.state.http_metrics
        timer = metrics.request_duration.start_timer()
        code = "500"

        try:
            response = await call_next(request)
            code = str(response.status_code)
        except HandlerFailure as exc:
            response = PlainTextResponse(exc.message, status_code=500)
        except Exception:
            # Not a simulated failure: a real bug.  Count it as a 500 and let
            # the server's error handling produce the response.
            logger.exception("Unhandled error in %s %s", request.method, request.url.path)
            raise
        finally:
            route = resolve_route(request.scope)
            if route is not None:
                labels = RequestLabels(method=request.method, route=route)
                timer.stop(labels.with_code(code))
                metrics.record_request(labels, code)

        return response
