"""Request metadata checks run at the top of every public service method."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from packages.petcare_shared.errors import ErrorDetail, codes, validation_error

from .meta import EnvelopeKind, EnvelopeMeta

_KIND_MESSAGE = "metadata.kind must be specified"


class _MetaShape(BaseModel):
    model_config = ConfigDict(extra="forbid")

    envelope_id: str = Field(min_length=1)
    trace_id: str = Field(min_length=1)
    parent_id: str
    timestamp: datetime
    kind: EnvelopeKind
    source: str = Field(min_length=1)
    principal: str = Field(min_length=1)

    @field_validator("kind")
    @classmethod
    def _kind_is_specified(cls, value: EnvelopeKind) -> EnvelopeKind:
        if value is EnvelopeKind.UNSPECIFIED:
            raise ValueError(_KIND_MESSAGE)
        return value


def validate_meta(meta: EnvelopeMeta) -> list[ErrorDetail]:
    """Return at most one validation error describing the first bad field."""
    try:
        _MetaShape.model_validate(asdict(meta))
    except ValidationError as exc:
        return [
            validation_error(
                _first_problem(exc),
                code=codes.MISSING_REQUIRED_FIELD,
                metadata={"field": "metadata"},
            )
        ]
    return []


def _first_problem(error: ValidationError) -> str:
    """Stable public wording for the first failing metadata field."""
    detail = error.errors()[0]
    location = detail.get("loc") or ("metadata",)
    field_name = str(location[0])
    if field_name == "kind":
        return _KIND_MESSAGE
    if field_name in {"envelope_id", "trace_id", "timestamp", "source", "principal"}:
        return f"metadata.{field_name} is required"
    return str(detail.get("msg", "invalid metadata"))
