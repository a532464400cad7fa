"""Request context: a request ID per request, and one log line when it ends.

Metrics tell you that /slow had three 500s in the last minute; they
can't tell you WHICH requests.  Every request gets an ID (the client's
X-Request-ID header if it sent one, otherwise a fresh UUID4), every log
line emitted while handling it carries that ID, and the response echoes
it back so a client can quote it.

The ID lives in a ContextVar rather than a thread-local: under asyncio
many requests share one thread, but each runs in its own context, so
concurrent /slow requests sleeping side by side never see each other's ID.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from observability_app.middleware.metrics import resolve_route

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Attach the current request ID to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_request_id_filter() -> None:
    """Install the filter on the root logger's handlers (idempotent).

    Filters on a logger only see records logged to THAT logger, so the
    filter goes on the handlers, which see records from every logger.
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log a summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            # None for requests no declared route matched.
            route = resolve_route(request.scope)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "route": route,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = req_id
        return response
