"""Routes that produce latency and errors on purpose.

  GET /slow   → 200 "Slow url accessed !!" after 3-9s, or 500 (1%)
  GET /error  → always 500

Both failure paths raise HandlerFailure after recording the error
metrics; MetricsMiddleware turns that into the 500 response.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from observability_app.api.dependencies import (
    get_http_metrics,
    get_request_labels,
    get_rng,
    get_sleep,
)
from observability_app.core.metrics import HttpMetrics, RequestLabels
from observability_app.services import synthetic
from observability_app.services.synthetic import RandomSource, SleepFunc

router = APIRouter(tags=["synthetic"])


@router.get("/slow", response_class=PlainTextResponse)
async def slow(
    metrics: Annotated[HttpMetrics, Depends(get_http_metrics)],
    labels: Annotated[RequestLabels, Depends(get_request_labels)],
    rng: Annotated[RandomSource, Depends(get_rng)],
    sleep: Annotated[SleepFunc, Depends(get_sleep)],
) -> str:
    return await synthetic.slow(metrics, labels, rng, sleep)


@router.get("/error", response_class=PlainTextResponse)
async def error(
    metrics: Annotated[HttpMetrics, Depends(get_http_metrics)],
    labels: Annotated[RequestLabels, Depends(get_request_labels)],
) -> str:
    synthetic.fail(metrics, labels)
