"""Logging for Petcare processes.

``configure_logging`` installs the stdout handler once per process,
``log_context`` scopes structured fields onto every line emitted inside it,
and ``public_api_instrumented`` wraps service methods with call observers.
"""

from .config import configure_logging, get_logger
from .context import bind_context, get_context, log_context
from .public_api import (
    ApiCall,
    ApiCallObserver,
    ApiOutcome,
    LoggingObserver,
    MetricsObserver,
    TracingObserver,
    public_api_instrumented,
)

__all__ = [
    "ApiCall",
    "ApiCallObserver",
    "ApiOutcome",
    "bind_context",
    "configure_logging",
    "get_context",
    "get_logger",
    "log_context",
    "LoggingObserver",
    "MetricsObserver",
    "public_api_instrumented",
    "TracingObserver",
]
