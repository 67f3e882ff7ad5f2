"""Domain contracts for Sync Authority Service payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    """Mutation kinds recorded in the change ledger."""

    UPSERT = "upsert"
    DELETE = "delete"


class ChangeRecord(BaseModel):
    """One immutable change-ledger entry.

    ``change_id`` orders entries within an owner and doubles as the pull
    cursor. ``version`` counts accepted mutations of one entity, starting at 1.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    change_id: int
    owner_id: str
    entity_type: str
    entity_id: str
    change_type: ChangeType
    record: dict[str, Any] | None
    version: int
    client_ts: datetime | None = None
    device_id: str
    op_id: str
    created_at: datetime


class EntityState(BaseModel):
    """Current authoritative state of one synced entity.

    A deleted entity keeps its row as a tombstone with ``record=None`` so the
    version counter survives deletion.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    owner_id: str
    entity_type: str
    entity_id: str
    record: dict[str, Any] | None
    version: int
    deleted: bool
    created_at: datetime
    updated_at: datetime


class _OperationBase(BaseModel):
    """Fields shared by every client operation variant."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    op_id: str
    entity_type: str
    entity_id: str
    base_version: int | None = Field(default=None, ge=0)
    client_ts: datetime | None = None
    device_id: str | None = None


class UpsertOperation(_OperationBase):
    """Create or update one entity from a snapshot or partial patch."""

    change_type: Literal["upsert"] = "upsert"
    record: dict[str, Any]


class DeleteOperation(_OperationBase):
    """Tombstone one entity."""

    change_type: Literal["delete"] = "delete"


SyncOperation = Annotated[
    Union[UpsertOperation, DeleteOperation],
    Field(discriminator="change_type"),
]


class OpRejection(BaseModel):
    """One rejected push operation and its machine-readable reason."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    op_id: str | None
    reason: str
    current_version: int | None = None


class PushResult(BaseModel):
    """Outcome of one push batch, partitioned per operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    accepted: list[str] = Field(default_factory=list)
    rejected: list[OpRejection] = Field(default_factory=list)


class PullPage(BaseModel):
    """One page of ledger entries after a client-held cursor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    next_cursor: int
    has_more: bool
    changes: list[ChangeRecord] = Field(default_factory=list)


class MutationStatus(str, Enum):
    """Result classes of one mutate attempt."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"
    FOREIGN_OP_ID = "foreign_op_id"


class MutationOutcome(BaseModel):
    """Repository-level result of one atomic mutate call.

    ``overrode_version`` is set when a conflicting write proceeded under a
    last-write-wins policy; it holds the version that was overwritten.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: MutationStatus
    change: ChangeRecord | None = None
    current_version: int | None = None
    overrode_version: int | None = None


class HealthStatus(BaseModel):
    """Sync Authority readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    service_ready: bool
    substrate_ready: bool
    detail: str
