"""Prometheus scrape endpoint.

A collector (Prometheus, Grafana Agent, the OTel collector's prometheus
receiver) GETs /metrics on an interval and parses the text:

  # HELP http_requests_total Total number of HTTP requests
  # TYPE http_requests_total counter
  http_requests_total{code="200",method="GET",route="/"} 12.0
  # HELP http_request_duration_seconds Duration of HTTP requests in seconds
  # TYPE http_request_duration_seconds histogram
  http_request_duration_seconds_bucket{code="200",le="5.0",method="GET",route="/slow"} 3.0
  ...

The body is rendered BEFORE the middleware records this request, so a
scrape reports every request except itself; the next scrape includes it.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from observability_app.api.dependencies import get_registry
from observability_app.core.registry import Registry

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics(registry: Annotated[Registry, Depends(get_registry)]) -> Response:
    """Expose the registry in Prometheus text exposition format."""
    return Response(content=registry.snapshot(), media_type=registry.content_type)
