"""FastAPI dependencies that hand shared state to route handlers.

Everything a handler needs (registry, metric bundle, random source, sleep
function) is built by ``create_app`` and parked on ``app.state``.  Handlers
ask for it through Depends(), never through a module-level global, so a
test app with its own registry and a scripted random source is fully
isolated from every other app in the process.
"""

from __future__ import annotations

from fastapi import Request

from observability_app.core.metrics import HttpMetrics, RequestLabels
from observability_app.core.registry import Registry
from observability_app.middleware.metrics import resolve_route
from observability_app.services.synthetic import RandomSource, SleepFunc


def get_registry(request: Request) -> Registry:
    return request.app.state.registry


def get_http_metrics(request: Request) -> HttpMetrics:
    return request.app.state.http_metrics


def get_rng(request: Request) -> RandomSource:
    return request.app.state.rng


def get_sleep(request: Request) -> SleepFunc:
    return request.app.state.sleep


def get_request_labels(request: Request) -> RequestLabels:
    """The method and matched route pattern of the current request.

    The router has put the matched route in the scope by the time any
    dependency runs, so this is the same label the MetricsMiddleware
    records under.
    """
    return RequestLabels(
        method=request.method,
        route=resolve_route(request.scope) or request.url.path,
    )
