"""Tests for the request context middleware.

Verifies that every response gets an X-Request-ID header (generated or
echoed) and that a completion line is logged with the request's route.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from observability_app.middleware.request_context import (
    _RequestContextFilter,
    install_request_id_filter,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_failures_and_404s(client: TestClient) -> None:
    assert client.get("/error").headers.get("x-request-id") is not None
    assert client.get("/missing").headers.get("x-request-id") is not None


def test_completion_line_logged_with_route(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="observability_app.middleware.request_context"):
        client.get("/error", headers={"X-Request-ID": "req-1"})

    records = [r for r in caplog.records if r.name.endswith("request_context")]
    assert len(records) == 1
    record = records[0]
    assert record.route == "/error"  # type: ignore[attr-defined]
    assert record.status_code == 500  # type: ignore[attr-defined]
    assert "GET /error → 500" in record.getMessage()


def test_filter_attaches_current_request_id() -> None:
    record = logging.LogRecord("t", logging.INFO, "t.py", 1, "msg", (), None)
    token = request_id_var.set("abc")
    try:
        assert _RequestContextFilter().filter(record) is True
    finally:
        request_id_var.reset(token)
    assert record.request_id == "abc"  # type: ignore[attr-defined]


def test_install_request_id_filter_is_idempotent() -> None:
    handler = logging.NullHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        install_request_id_filter()
        install_request_id_filter()
        assert sum(isinstance(f, _RequestContextFilter) for f in handler.filters) == 1
    finally:
        root.removeHandler(handler)
