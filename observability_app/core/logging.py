"""Logging configuration for observability-app.

This service is mostly about METRICS (numbers a collector scrapes), but
numbers can't tell you which request failed or why.  Logs fill that gap:
one line per request from RequestContextMiddleware, plus warnings from
the synthetic endpoints when they fail on purpose.

Both formatters read the same request context off the LogRecord (the
request ID from the filter, the rest from ``extra=`` on the per-request
line), so a JSON line and a text line for one request carry the same
facts:

  text  2026-01-01T12:00:00.123Z WARNING  observability_app.services.synthetic  Simulated failure on GET /error  rid=4f1c...  [synthetic.py:62]
  json  {"timestamp": "2026-01-01T12:00:00.123Z", "level": "WARNING", ..., "request_id": "4f1c..."}

Timestamps are UTC.  Turn JSON on with LOG_JSON=true.
"""

from __future__ import annotations

import json
import logging
import sys
import time

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# uvicorn's access log duplicates our per-request line.
_NOISY_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx")

_CONTEXT_FIELDS = (
    "request_id",
    "method",
    "route",
    "path",
    "status_code",
    "duration_ms",
)


def _request_context(record: logging.LogRecord) -> dict[str, object]:
    """Context fields present on ``record``; "-" means "outside a request"."""
    fields: dict[str, object] = {}
    for key in _CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None and value != "-":
            fields[key] = value
    return fields


class _UtcFormatter(logging.Formatter):
    converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = time.strftime("%Y-%m-%dT%H:%M:%S", self.converter(record.created))
        return f"{stamp}.{int(record.msecs):03d}Z"


class _TextFormatter(_UtcFormatter):
    """One line per record for a terminal.

    The request ID, when there is one, follows the message as ``rid=``;
    WARNING and above end with [file:line].
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self.formatTime(record),
            f"{record.levelname:<8}",
            f"{record.name} ",
            record.getMessage(),
        ]
        request_id = _request_context(record).get("request_id")
        if request_id is not None:
            parts.append(f" rid={request_id}")
        if record.levelno >= logging.WARNING:
            parts.append(f" [{record.filename}:{record.lineno}]")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class _JsonFormatter(_UtcFormatter):
    """JSON Lines: request context fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_request_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Send all logs to stdout; unknown level names mean info."""
    level = _LEVELS.get(level_name.lower(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _TextFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
