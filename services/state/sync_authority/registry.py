"""Registry of synced entity types and their record-merge behavior."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from services.state.sync_authority.config import ConflictPolicyName
from services.state.sync_authority.domain import ChangeType


class RecordMerger(Protocol):
    """Combine current entity state with an incoming upsert payload."""

    def merge(
        self,
        current: Mapping[str, Any] | None,
        incoming: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Return the full resulting entity record."""


class ReplaceRecordMerger:
    """Treat every upsert payload as a complete snapshot."""

    def merge(
        self,
        current: Mapping[str, Any] | None,
        incoming: Mapping[str, Any],
    ) -> dict[str, Any]:
        del current
        return dict(incoming)


class ShallowPatchMerger:
    """Overlay top-level keys of a partial patch onto the current record."""

    def merge(
        self,
        current: Mapping[str, Any] | None,
        incoming: Mapping[str, Any],
    ) -> dict[str, Any]:
        merged = dict(current or {})
        merged.update(incoming)
        return merged


@dataclass(frozen=True, slots=True)
class EntityTypeRegistration:
    """Allowed change types and merge semantics for one synced entity type.

    ``conflict_policy`` is the type's built-in default; per-type settings
    override it.
    """

    entity_type: str
    change_types: frozenset[ChangeType]
    merger: RecordMerger
    conflict_policy: ConflictPolicyName | None = None

    def allows(self, change_type: str) -> bool:
        """Return whether ``change_type`` is permitted for this entity type."""
        return any(item.value == change_type for item in self.change_types)


class EntityTypeRegistry:
    """Static in-memory mapping from ``entity_type`` to its registration."""

    def __init__(self, registrations: tuple[EntityTypeRegistration, ...] = ()) -> None:
        self._registrations: dict[str, EntityTypeRegistration] = {}
        for registration in registrations:
            self.register(registration)

    def register(self, registration: EntityTypeRegistration) -> None:
        """Add one entity type; duplicate names are rejected."""
        if registration.entity_type in self._registrations:
            raise ValueError(
                f"entity type already registered: {registration.entity_type}"
            )
        if len(registration.change_types) == 0:
            raise ValueError(
                f"entity type {registration.entity_type} declares no change types"
            )
        self._registrations[registration.entity_type] = registration

    def get(self, entity_type: str) -> EntityTypeRegistration | None:
        """Return one registration, or ``None`` for unknown types."""
        return self._registrations.get(entity_type)

    def entity_types(self) -> tuple[str, ...]:
        """Return all registered entity type names in sorted order."""
        return tuple(sorted(self._registrations))


_ALL_CHANGE_TYPES = frozenset({ChangeType.UPSERT, ChangeType.DELETE})


def default_registry() -> EntityTypeRegistry:
    """Build the registry of entity types synced out of the box."""
    return EntityTypeRegistry(
        (
            EntityTypeRegistration(
                entity_type="pet",
                change_types=_ALL_CHANGE_TYPES,
                merger=ShallowPatchMerger(),
            ),
            EntityTypeRegistration(
                entity_type="document",
                change_types=_ALL_CHANGE_TYPES,
                merger=ReplaceRecordMerger(),
            ),
        )
    )
