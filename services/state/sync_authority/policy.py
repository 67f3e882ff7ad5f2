"""Conflict policies applied when a write was based on a stale version."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from services.state.sync_authority.config import (
    ConflictPolicyName,
    SyncAuthoritySettings,
)
from services.state.sync_authority.registry import EntityTypeRegistry


@dataclass(frozen=True, slots=True)
class ConflictDecision:
    """Whether a stale write was detected and whether it may proceed."""

    conflict: bool
    proceed: bool


class ConflictPolicy(Protocol):
    """Decide the fate of one write given its base and current versions."""

    name: ConflictPolicyName

    def evaluate(
        self, *, base_version: int | None, current_version: int
    ) -> ConflictDecision:
        """Return the decision for one write."""


def is_stale(*, base_version: int | None, current_version: int) -> bool:
    """Return whether the client last observed an older version than the server's."""
    return base_version is not None and base_version < current_version


class StrictConflictPolicy:
    """Reject stale writes so the client must pull and rebase."""

    name: ConflictPolicyName = "strict"

    def evaluate(
        self, *, base_version: int | None, current_version: int
    ) -> ConflictDecision:
        stale = is_stale(base_version=base_version, current_version=current_version)
        return ConflictDecision(conflict=stale, proceed=not stale)


class LastWriteWinsConflictPolicy:
    """Accept stale writes; the caller logs the overwritten version."""

    name: ConflictPolicyName = "last_write_wins"

    def evaluate(
        self, *, base_version: int | None, current_version: int
    ) -> ConflictDecision:
        stale = is_stale(base_version=base_version, current_version=current_version)
        return ConflictDecision(conflict=stale, proceed=True)


_POLICIES: dict[ConflictPolicyName, ConflictPolicy] = {
    "strict": StrictConflictPolicy(),
    "last_write_wins": LastWriteWinsConflictPolicy(),
}


def policy_for_name(name: ConflictPolicyName) -> ConflictPolicy:
    """Return the shared policy instance for one configured name."""
    try:
        return _POLICIES[name]
    except KeyError as exc:
        raise ValueError(f"unknown conflict policy: {name}") from exc


class ConflictPolicyResolver:
    """Resolve the policy for an entity type.

    Precedence: per-type setting, then the registration's own default, then
    ``default_conflict_policy``.
    """

    def __init__(
        self,
        *,
        settings: SyncAuthoritySettings,
        registry: EntityTypeRegistry,
    ) -> None:
        self._settings = settings
        self._registry = registry

    def for_entity_type(self, entity_type: str) -> ConflictPolicy:
        """Return the policy applied to every write of ``entity_type``."""
        configured = self._settings.conflict_policies.get(entity_type)
        if configured is not None:
            return policy_for_name(configured)
        registration = self._registry.get(entity_type)
        if registration is not None and registration.conflict_policy is not None:
            return policy_for_name(registration.conflict_policy)
        return policy_for_name(self._settings.default_conflict_policy)
