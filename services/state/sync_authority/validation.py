"""Boundary validation for push operations and service request shapes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from packages.petcare_shared.ids import is_uuid
from services.state.sync_authority import codes
from services.state.sync_authority.domain import OpRejection, SyncOperation
from services.state.sync_authority.registry import EntityTypeRegistry

_REQUIRED_OP_FIELDS = ("op_id", "entity_type", "entity_id", "change_type")
_OPERATION_ADAPTER: TypeAdapter[SyncOperation] = TypeAdapter(SyncOperation)


def parse_operation(
    raw: object,
    *,
    registry: EntityTypeRegistry,
) -> tuple[SyncOperation | None, OpRejection | None]:
    """Validate one raw client operation into its tagged variant.

    Checks run in a fixed order and the first failure determines the reason:
    missing fields, op id shape, entity id shape, entity type, change type,
    then the variant payload.
    """
    if not isinstance(raw, Mapping):
        return None, OpRejection(op_id=None, reason=codes.INVALID_OP)

    op_id = _echo_op_id(raw.get("op_id"))
    if any(_is_blank(raw.get(name)) for name in _REQUIRED_OP_FIELDS):
        return None, OpRejection(op_id=op_id, reason=codes.INVALID_OP)
    if not is_uuid(raw["op_id"]):
        return None, OpRejection(op_id=op_id, reason=codes.INVALID_OP_ID)
    if not is_uuid(raw["entity_id"]):
        return None, OpRejection(op_id=op_id, reason=codes.INVALID_ENTITY_ID)

    entity_type = raw["entity_type"]
    registration = (
        registry.get(entity_type) if isinstance(entity_type, str) else None
    )
    if registration is None:
        return None, OpRejection(op_id=op_id, reason=codes.UNSUPPORTED_ENTITY_TYPE)
    change_type = raw["change_type"]
    if not isinstance(change_type, str) or not registration.allows(change_type):
        return None, OpRejection(op_id=op_id, reason=codes.UNSUPPORTED_CHANGE_TYPE)

    payload = dict(raw)
    payload["op_id"] = str(raw["op_id"]).lower()
    payload["entity_id"] = str(raw["entity_id"]).lower()
    if payload.get("record") is None:
        payload.pop("record", None)
    try:
        operation = _OPERATION_ADAPTER.validate_python(payload)
    except ValidationError:
        return None, OpRejection(op_id=op_id, reason=codes.INVALID_OP)
    return operation, None


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _echo_op_id(value: object) -> str | None:
    """Return the op id as clients sent it, for correlation in rejections."""
    if _is_blank(value):
        return None
    return value if isinstance(value, str) else str(value)


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def _require_text(value: str, *, field_name: str) -> str:
    """Require one non-empty text field with stable error message."""
    normalized = value.strip()
    if normalized == "":
        raise ValueError(f"{field_name} is required")
    return normalized


class PushRequest(_ValidationModel):
    """Validated push batch shape; individual ops are validated one by one."""

    owner_id: str
    device_id: str
    ops: Sequence[Any] = Field(default_factory=tuple)

    @field_validator("owner_id")
    @classmethod
    def _validate_owner_id(cls, value: str, info: ValidationInfo) -> str:
        """Require a non-empty tenant scope."""
        return _require_text(value, field_name=str(info.field_name))


class PullRequest(_ValidationModel):
    """Validated pull request shape."""

    owner_id: str
    since: int = Field(default=0, ge=0)
    limit: int | None = None
    entity_types: tuple[str, ...] | None = None

    @field_validator("owner_id")
    @classmethod
    def _validate_owner_id(cls, value: str, info: ValidationInfo) -> str:
        """Require a non-empty tenant scope."""
        return _require_text(value, field_name=str(info.field_name))


class EntityKeyRequest(_ValidationModel):
    """Validated request shape for reads keyed by one entity."""

    owner_id: str
    entity_type: str
    entity_id: str

    @field_validator("owner_id", "entity_type")
    @classmethod
    def _validate_text(cls, value: str, info: ValidationInfo) -> str:
        """Require non-empty owner and type fields."""
        return _require_text(value, field_name=str(info.field_name))

    @field_validator("entity_id")
    @classmethod
    def _validate_entity_id(cls, value: str, info: ValidationInfo) -> str:
        """Require a UUID entity id and normalize to lowercase."""
        normalized = value.strip()
        if not is_uuid(normalized):
            raise ValueError(f"{info.field_name} must be a UUID")
        return normalized.lower()


class EntityListRequest(_ValidationModel):
    """Validated request shape for listing entities of one type."""

    owner_id: str
    entity_type: str
    include_deleted: bool = False

    @field_validator("owner_id", "entity_type")
    @classmethod
    def _validate_text(cls, value: str, info: ValidationInfo) -> str:
        """Require non-empty owner and type fields."""
        return _require_text(value, field_name=str(info.field_name))
