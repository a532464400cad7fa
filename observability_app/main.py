from __future__ import annotations

import asyncio
import logging
import random

import uvicorn
from fastapi import FastAPI

from observability_app.api.metrics_endpoint import router as metrics_router
from observability_app.api.root import router as root_router
from observability_app.api.synthetic import router as synthetic_router
from observability_app.core.config import SETTINGS, Settings
from observability_app.core.logging import setup_logging
from observability_app.core.metrics import build_http_metrics
from observability_app.core.registry import Registry
from observability_app.middleware.metrics import MetricsMiddleware
from observability_app.middleware.request_context import (
    RequestContextMiddleware,
    install_request_id_filter,
)
from observability_app.services.synthetic import RandomSource, SleepFunc

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_id_filter()

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = SETTINGS,
    *,
    registry: Registry | None = None,
    rng: RandomSource | None = None,
    sleep: SleepFunc | None = None,
) -> FastAPI:
    """Build the application and its metric registry.

    Every collaborator can be injected; the defaults are what production
    runs.  Metric registration errors (DuplicateNameError) propagate: a
    service that can't build its registry must not start.
    """
    if registry is None:
        registry = Registry()
    http_metrics = build_http_metrics(registry)
    if settings.collect_default_metrics:
        registry.register_default_collectors(namespace=settings.metrics_prefix)

    app = FastAPI(
        title="observability-app",
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
        openapi_url="/openapi.json" if settings.is_dev else None,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.http_metrics = http_metrics
    app.state.rng = rng if rng is not None else random.Random(settings.random_seed)
    app.state.sleep = sleep if sleep is not None else asyncio.sleep

    # Last-added runs first: RequestContext (outermost) → Metrics → route.
    # The request ID is set before the metrics middleware logs anything.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(root_router)
    app.include_router(metrics_router)
    app.include_router(synthetic_router)

    logger.info(
        "observability-app ready  env=%s metrics=%d default_collectors=%s",
        settings.app_env,
        len(registry),
        "on" if settings.collect_default_metrics else "off",
    )
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` on 0.0.0.0:PORT."""
    logger.info(
        "Server is running on http://localhost:%d, metrics are exposed on "
        "http://localhost:%d/metrics",
        SETTINGS.port,
        SETTINGS.port,
    )
    uvicorn.run(app, host="0.0.0.0", port=SETTINGS.port, log_config=None)


if __name__ == "__main__":
    run()
