"""Translate SQLAlchemy and driver exceptions into shared error records.

Rules are checked in order; the first match wins. The driver exception is
read from ``exc.orig`` when SQLAlchemy wrapped it.
"""

from __future__ import annotations

from packages.petcare_shared.errors import (
    ErrorDetail,
    codes,
    conflict_error,
    dependency_error,
    internal_error,
)

_UNIQUE_MESSAGES = ("duplicate key value", "UNIQUE constraint failed")
_RETRYABLE_DRIVER_ERRORS = frozenset(
    {"SerializationFailure", "DeadlockDetected", "LockNotAvailable"}
)


def normalize_postgres_error(exc: Exception) -> ErrorDetail:
    """Return the error record for one failed database call."""
    outer = type(exc).__name__
    driver = type(getattr(exc, "orig", None) or exc).__name__
    text = str(exc)
    metadata = {"exception_type": outer}

    if "UniqueViolation" in driver or any(marker in text for marker in _UNIQUE_MESSAGES):
        return conflict_error(
            "resource already exists", code=codes.ALREADY_EXISTS, metadata=metadata
        )
    if driver in _RETRYABLE_DRIVER_ERRORS:
        return dependency_error("postgres transaction aborted; retry", metadata=metadata)
    if "OperationalError" in outer or "timeout" in text.lower():
        return dependency_error(
            "postgres unavailable", code=codes.DEPENDENCY_UNAVAILABLE, metadata=metadata
        )
    if outer.endswith(("InterfaceError", "ProgrammingError")):
        return dependency_error(
            "postgres request failed", retryable=False, metadata=metadata
        )
    return internal_error(
        "unexpected postgres failure", code=codes.UNEXPECTED_EXCEPTION, metadata=metadata
    )
