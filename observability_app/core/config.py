from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    collect_default_metrics: bool
    metrics_prefix: str
    random_seed: int | None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8080")
    seed_raw = _getenv("RANDOM_SEED", "")
    metrics_prefix = _getenv("METRICS_PREFIX", "")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None
    if not 0 < port < 65536:
        raise ValueError(f"PORT must be between 1 and 65535 (got {port})")

    random_seed: int | None = None
    if seed_raw:
        try:
            random_seed = int(seed_raw)
        except ValueError:
            raise ValueError(
                f"RANDOM_SEED must be an integer (got {seed_raw!r})"
            ) from None

    # The prefix becomes part of metric names, so it must be a valid one itself.
    if metrics_prefix and not re.fullmatch(r"[a-zA-Z_][a-zA-Z0-9_]*", metrics_prefix):
        raise ValueError(
            f"METRICS_PREFIX must be a valid metric name prefix (got {metrics_prefix!r})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        collect_default_metrics=_getbool("COLLECT_DEFAULT_METRICS", True),
        metrics_prefix=metrics_prefix,
        random_seed=random_seed,
    )


SETTINGS = load_settings()
