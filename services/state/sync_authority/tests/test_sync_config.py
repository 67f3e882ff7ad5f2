"""Tests for Sync Authority settings resolution and component wiring."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from packages.petcare_shared.config import PetcareSettings
from packages.petcare_shared.envelope import EnvelopeKind, new_meta
from resources.substrates.postgres.config import PostgresSettings
from resources.substrates.postgres.substrate import SharedPostgresSubstrate
from services.state.sync_authority.component import (
    MANIFEST,
    POSTGRES_COMPONENT_ID,
    build_component,
)
from services.state.sync_authority.config import (
    SyncAuthoritySettings,
    resolve_sync_authority_settings,
)
from services.state.sync_authority.data.runtime import sync_postgres_schema
from services.state.sync_authority.data.schema import metadata
from services.state.sync_authority.implementation import DefaultSyncAuthorityService


def test_defaults() -> None:
    """Defaults should cap pages at 500 and reject stale writes."""
    settings = SyncAuthoritySettings()

    assert settings.pull_default_limit == 500
    assert settings.pull_max_limit == 500
    assert settings.default_conflict_policy == "strict"
    assert settings.conflict_policies == {}
    assert settings.max_commit_attempts == 3
    assert settings.default_device_id == "unknown"


def test_resolves_from_service_namespace() -> None:
    """Settings should come from ``components.service.sync_authority``."""
    settings = PetcareSettings(
        components={
            "service": {
                "sync_authority": {
                    "pull_default_limit": 100,
                    "conflict_policies": {"document": "last_write_wins"},
                }
            }
        }
    )

    resolved = resolve_sync_authority_settings(settings)

    assert resolved.pull_default_limit == 100
    assert resolved.conflict_policies == {"document": "last_write_wins"}


def test_resolves_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Nested environment variables should reach the service settings."""
    monkeypatch.setenv(
        "PETCARE_COMPONENTS__SERVICE__SYNC_AUTHORITY__DEFAULT_CONFLICT_POLICY",
        "last_write_wins",
    )

    resolved = resolve_sync_authority_settings(PetcareSettings())

    assert resolved.default_conflict_policy == "last_write_wins"


@pytest.mark.parametrize(
    "overrides",
    [
        {"pull_default_limit": 600},
        {"pull_max_limit": 0},
        {"default_conflict_policy": "merge"},
        {"conflict_policies": {"pet": "newest"}},
        {"max_commit_attempts": 0},
        {"default_device_id": "  "},
        {"unexpected": True},
    ],
)
def test_rejects_invalid_values(overrides: dict[str, object]) -> None:
    """Invalid limits, policy names and unknown keys should fail validation."""
    with pytest.raises(ValidationError):
        SyncAuthoritySettings(**overrides)


def test_manifest_declares_state_service() -> None:
    """The service should register as an L1 state component."""
    assert str(MANIFEST.id) == "service_sync_authority"
    assert MANIFEST.layer == 1
    assert MANIFEST.system == "state"
    assert MANIFEST.schema_name == sync_postgres_schema()


def test_build_component_waits_for_postgres() -> None:
    """Building before the substrate exists should defer with ``KeyError``."""
    with pytest.raises(KeyError):
        build_component(settings=PetcareSettings(), components={})


def test_build_component_wires_default_service() -> None:
    """A built service should answer health through the shared substrate."""
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    substrate = SharedPostgresSubstrate(settings=PostgresSettings(), engine=engine)
    try:
        service = build_component(
            settings=PetcareSettings(),
            components={POSTGRES_COMPONENT_ID: substrate},
        )
        assert isinstance(service, DefaultSyncAuthorityService)
        health = service.health(
            meta=new_meta(kind=EnvelopeKind.QUERY, source="test", principal="operator")
        )
    finally:
        substrate.dispose()

    assert health.ok
