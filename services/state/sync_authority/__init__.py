"""Sync Authority Service native package exports."""

from packages.petcare_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta
from packages.petcare_shared.errors import ErrorCategory, ErrorDetail
from services.state.sync_authority.component import MANIFEST
from services.state.sync_authority.config import SyncAuthoritySettings
from services.state.sync_authority.domain import (
    ChangeRecord,
    ChangeType,
    EntityState,
    HealthStatus,
    OpRejection,
    PullPage,
    PushResult,
)
from services.state.sync_authority.implementation import DefaultSyncAuthorityService
from services.state.sync_authority.registry import (
    EntityTypeRegistration,
    EntityTypeRegistry,
    default_registry,
)
from services.state.sync_authority.service import SyncAuthorityService

__all__ = [
    "MANIFEST",
    "SyncAuthorityService",
    "SyncAuthoritySettings",
    "DefaultSyncAuthorityService",
    "ChangeRecord",
    "ChangeType",
    "EntityState",
    "HealthStatus",
    "OpRejection",
    "PullPage",
    "PushResult",
    "EntityTypeRegistration",
    "EntityTypeRegistry",
    "default_registry",
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "ErrorCategory",
    "ErrorDetail",
]
