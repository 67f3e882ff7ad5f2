"""Structured field names used in log lines, span attributes and metric labels."""

# JSON line envelope.
TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"
SERVICE = "service"
ENVIRONMENT = "environment"

# Request correlation, copied from envelope metadata.
TRACE_ID = "trace_id"
ENVELOPE_ID = "envelope_id"
PRINCIPAL = "principal"

# Public API call observers.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
OUTCOME = "outcome"
ERROR_CATEGORY = "error_category"
STAGE = "stage"
OBSERVER = "observer"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"

# Sync operations.
OWNER_ID = "owner_id"
DEVICE_ID = "device_id"
OP_ID = "op_id"
ENTITY_TYPE = "entity_type"
ENTITY_ID = "entity_id"
BASE_VERSION = "base_version"
CURRENT_VERSION = "current_version"
SYNC_CONFLICT_EVENT = "sync_conflict"
SYNC_OP_FAILURE_EVENT = "sync_op_failure"
