"""Error codes shared by every Petcare component.

Sync rejection reasons are not listed here; the sync service keeps its own
per-operation vocabulary.
"""

VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

NOT_FOUND = "NOT_FOUND"
RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"
VERSION_CONFLICT = "VERSION_CONFLICT"

POLICY_VIOLATION = "POLICY_VIOLATION"
UNAUTHENTICATED = "UNAUTHENTICATED"

DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"

INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
