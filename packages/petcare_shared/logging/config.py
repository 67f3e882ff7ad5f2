"""Stdout handler setup and the two line formats Petcare emits.

JSON output is one object per line; plain output is the classic
``time level logger message`` line followed by the bound fields as
``key=value`` pairs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from . import fields
from .context import bind_context, get_context


class ContextFilter(logging.Filter):
    """Snapshot the bound logging fields onto each record as ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = get_context()
        return True


def _record_context(record: logging.LogRecord) -> dict[str, str]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            fields.TIMESTAMP: datetime.now(UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            **_record_context(record),
        }
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        pairs = [f"{key}={value}" for key, value in sorted(_record_context(record).items())]
        return " ".join([super().format(record), *pairs])


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
) -> None:
    """Route the root logger to exactly one stdout handler.

    Calling this again swaps the handler instead of stacking a second one.
    ``service`` and ``environment`` are bound as process-wide fields.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())

    bind_context(**{fields.SERVICE: service or None, fields.ENVIRONMENT: environment or None})


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
