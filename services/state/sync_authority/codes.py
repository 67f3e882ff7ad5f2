"""Per-operation rejection reasons reported by push.

Reasons are wire values: clients branch on them, so they never change once
published.
"""

INVALID_OP = "invalid_op"
INVALID_OP_ID = "invalid_op_id"
INVALID_ENTITY_ID = "invalid_entity_id"
UNSUPPORTED_ENTITY_TYPE = "unsupported_entity_type"
UNSUPPORTED_CHANGE_TYPE = "unsupported_change_type"
CONFLICT = "conflict"
SERVER_ERROR = "server_error"

# Pet-specific sync routes predate the generic engine and speak their own
# vocabulary for the same failures.
INVALID_PET_ID = "invalid_pet_id"
UNSUPPORTED_TYPE = "unsupported_type"

PET_REASON_ALIASES: dict[str, str] = {
    INVALID_ENTITY_ID: INVALID_PET_ID,
    UNSUPPORTED_ENTITY_TYPE: UNSUPPORTED_TYPE,
    UNSUPPORTED_CHANGE_TYPE: UNSUPPORTED_TYPE,
}
