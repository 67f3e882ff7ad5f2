"""Transport-neutral protocol interfaces used by Sync Authority Service."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from services.state.sync_authority.domain import (
    ChangeRecord,
    ChangeType,
    EntityState,
    MutationOutcome,
)
from services.state.sync_authority.policy import ConflictPolicy
from services.state.sync_authority.registry import RecordMerger


class StaleEntityError(RuntimeError):
    """Raised when an entity row changed between read and compare-and-swap write."""


@dataclass(frozen=True, slots=True)
class MutationCommand:
    """One validated mutation ready for the atomic mutate capability."""

    owner_id: str
    entity_type: str
    entity_id: str
    change_type: ChangeType
    record: dict[str, Any] | None
    base_version: int | None
    client_ts: datetime | None
    device_id: str
    op_id: str


class SyncRepository(Protocol):
    """Persistence contract for the entity store and change ledger.

    ``mutate`` is the only write path: every entity-store write it performs is
    paired with exactly one ledger append in the same transaction.
    """

    def mutate(
        self,
        *,
        command: MutationCommand,
        policy: ConflictPolicy,
        merger: RecordMerger,
    ) -> MutationOutcome:
        """Apply one mutation atomically, or report duplicate/conflict."""

    def list_changes(
        self,
        *,
        owner_id: str,
        since: int,
        limit: int,
        entity_types: Sequence[str] | None = None,
    ) -> list[ChangeRecord]:
        """Read ledger entries strictly after ``since``, ascending."""

    def get_entity(
        self, *, owner_id: str, entity_type: str, entity_id: str
    ) -> EntityState | None:
        """Read one entity row, tombstones included."""

    def list_entities(
        self,
        *,
        owner_id: str,
        entity_type: str,
        include_deleted: bool = False,
    ) -> list[EntityState]:
        """List entity rows of one type for one owner."""

    def probe(self) -> None:
        """Raise when the backing store is unavailable."""
