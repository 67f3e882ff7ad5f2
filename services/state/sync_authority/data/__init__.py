"""Data-layer exports for Sync Authority Service."""

from services.state.sync_authority.data.repository import PostgresSyncRepository
from services.state.sync_authority.data.runtime import (
    SyncPostgresRuntime,
    sync_postgres_schema,
)
from services.state.sync_authority.data.sequence import (
    CounterTableSequenceAllocator,
    SequenceAllocator,
)

__all__ = [
    "CounterTableSequenceAllocator",
    "PostgresSyncRepository",
    "SequenceAllocator",
    "SyncPostgresRuntime",
    "sync_postgres_schema",
]
