"""Sync Authority Postgres runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass

from resources.substrates.postgres import ServiceSchemaSessionProvider
from resources.substrates.postgres.substrate import PostgresSubstrate
from services.state.sync_authority.component import MANIFEST


@dataclass(frozen=True)
class SyncPostgresRuntime:
    """Schema-scoped session access for the sync-owned Postgres schema."""

    substrate: PostgresSubstrate
    schema_sessions: ServiceSchemaSessionProvider

    @classmethod
    def from_substrate(cls, substrate: PostgresSubstrate) -> "SyncPostgresRuntime":
        """Bind the shared substrate to this service's schema."""
        return cls(
            substrate=substrate,
            schema_sessions=substrate.schema_sessions(sync_postgres_schema()),
        )


def sync_postgres_schema() -> str:
    """Resolve the sync-owned schema name from the service manifest."""
    return MANIFEST.schema_name
