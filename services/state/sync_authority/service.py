"""Authoritative in-process Python API for Sync Authority Service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from packages.petcare_shared.config import PetcareSettings
from packages.petcare_shared.envelope import Envelope, EnvelopeMeta
from resources.substrates.postgres.substrate import PostgresSubstrate
from services.state.sync_authority.domain import (
    ChangeRecord,
    EntityState,
    HealthStatus,
    PullPage,
    PushResult,
)


class SyncAuthorityService(ABC):
    """Public API for offline-first entity synchronization.

    All writers, device pushes and server-side CRUD handlers alike, go through
    this API so every entity-store change is recorded in the change ledger.
    """

    @abstractmethod
    def push(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        device_id: str | None,
        ops: Sequence[Mapping[str, Any]],
    ) -> Envelope[PushResult]:
        """Apply an ordered batch of client operations independently."""

    @abstractmethod
    def pull(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        since: int = 0,
        limit: int | None = None,
        entity_types: Sequence[str] | None = None,
    ) -> Envelope[PullPage]:
        """Return one page of ledger entries after the client cursor."""

    @abstractmethod
    def mutate_entity(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        entity_type: str,
        entity_id: str,
        change_type: str,
        record: Mapping[str, Any] | None = None,
        base_version: int | None = None,
        device_id: str | None = None,
        op_id: str | None = None,
        client_ts: datetime | None = None,
    ) -> Envelope[ChangeRecord]:
        """Apply one server-side CRUD mutation through the shared mutate path."""

    @abstractmethod
    def get_entity(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        entity_type: str,
        entity_id: str,
    ) -> Envelope[EntityState]:
        """Read the current state of one live entity."""

    @abstractmethod
    def list_entities(
        self,
        *,
        meta: EnvelopeMeta,
        owner_id: str,
        entity_type: str,
        include_deleted: bool = False,
    ) -> Envelope[list[EntityState]]:
        """List entities of one type for one owner."""

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[HealthStatus]:
        """Return service and owned dependency readiness status."""


def build_sync_authority_service(
    *,
    settings: PetcareSettings,
    postgres: PostgresSubstrate,
) -> SyncAuthorityService:
    """Build the default Sync Authority implementation from typed settings."""
    from services.state.sync_authority.config import resolve_sync_authority_settings
    from services.state.sync_authority.data import (
        PostgresSyncRepository,
        SyncPostgresRuntime,
    )
    from services.state.sync_authority.implementation import (
        DefaultSyncAuthorityService,
    )
    from services.state.sync_authority.registry import default_registry

    runtime = SyncPostgresRuntime.from_substrate(postgres)
    return DefaultSyncAuthorityService(
        settings=resolve_sync_authority_settings(settings),
        repository=PostgresSyncRepository(runtime.schema_sessions),
        registry=default_registry(),
    )
