"""One constructor per error category.

Every constructor takes the message positionally and an optional ``code`` and
``metadata``. Only dependency errors default to ``retryable``.
"""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import ErrorCategory, ErrorDetail

Metadata = Mapping[str, str] | None


def _detail(
    category: ErrorCategory,
    message: str,
    code: str,
    metadata: Metadata,
    retryable: bool = False,
) -> ErrorDetail:
    return ErrorDetail(
        code=code,
        message=message,
        category=category,
        retryable=retryable,
        metadata=dict(metadata or {}),
    )


def validation_error(
    message: str, *, code: str = codes.VALIDATION_ERROR, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.VALIDATION, message, code, metadata)


def not_found_error(
    message: str, *, code: str = codes.NOT_FOUND, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.NOT_FOUND, message, code, metadata)


def conflict_error(
    message: str, *, code: str = codes.CONFLICT, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.CONFLICT, message, code, metadata)


def policy_error(
    message: str, *, code: str = codes.POLICY_VIOLATION, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.POLICY, message, code, metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Metadata = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.DEPENDENCY, message, code, metadata, retryable)


def internal_error(
    message: str, *, code: str = codes.INTERNAL_ERROR, metadata: Metadata = None
) -> ErrorDetail:
    return _detail(ErrorCategory.INTERNAL, message, code, metadata)
