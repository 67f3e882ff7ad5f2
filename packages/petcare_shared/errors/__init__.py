"""Error records, codes and per-category constructors."""

from . import codes
from .factories import (
    conflict_error,
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from .types import ErrorCategory, ErrorDetail

__all__ = [
    "codes",
    "conflict_error",
    "dependency_error",
    "ErrorCategory",
    "ErrorDetail",
    "internal_error",
    "not_found_error",
    "policy_error",
    "validation_error",
]
