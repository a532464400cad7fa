from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

# Ensure repo root is on sys.path so `import observability_app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from observability_app.core.config import SETTINGS, Settings  # noqa: E402
from observability_app.core.registry import Registry  # noqa: E402
from observability_app.main import create_app  # noqa: E402


class ScriptedRandom:
    """Random source that returns fixed draws.

    failure_draw: what randrange(100) returns (0 = take the failure branch)
    delay:        what randint(3, 9) returns
    """

    def __init__(self, failure_draw: int = 50, delay: int = 5) -> None:
        self.failure_draw = failure_draw
        self.delay = delay
        self.randint_calls: list[tuple[int, int]] = []

    def randrange(self, stop: int) -> int:
        return self.failure_draw

    def randint(self, a: int, b: int) -> int:
        self.randint_calls.append((a, b))
        return self.delay


class RecordingSleep:
    """Async sleep replacement that records the delay and returns at once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def settings() -> Settings:
    # Process/GC collectors are exercised in their own tests; keep scrapes small.
    return replace(SETTINGS, app_env="test", collect_default_metrics=False)


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def app(
    settings: Settings,
    registry: Registry,
    rng: ScriptedRandom,
    sleep: RecordingSleep,
) -> FastAPI:
    return create_app(settings, registry=registry, rng=rng, sleep=sleep)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def request_labels(route: str, code: str, method: str = "GET") -> dict[str, str]:
    return {"method": method, "route": route, "code": code}
