"""Real-provider integration tests for the sync Postgres repository."""

from __future__ import annotations

import os
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest
from sqlalchemy import text

from packages.petcare_shared.config import load_settings
from packages.petcare_shared.envelope import EnvelopeKind, new_meta
from resources.substrates.postgres.config import resolve_postgres_settings
from resources.substrates.postgres.substrate import SharedPostgresSubstrate
from services.state.sync_authority.config import SyncAuthoritySettings
from services.state.sync_authority.data.repository import PostgresSyncRepository
from services.state.sync_authority.data.runtime import sync_postgres_schema
from services.state.sync_authority.data.schema import metadata
from services.state.sync_authority.implementation import DefaultSyncAuthorityService
from services.state.sync_authority.registry import default_registry

pytestmark = pytest.mark.skipif(
    os.getenv("PETCARE_RUN_INTEGRATION_REAL", "").strip() != "1",
    reason="set PETCARE_RUN_INTEGRATION_REAL=1 to run real-provider integration tests",
)

ENTITY_ID = "7f1c2b1e-4d7a-4c1e-9a57-3c2f0b5a9e01"


@pytest.fixture
def service() -> Iterator[DefaultSyncAuthorityService]:
    """Service over a freshly created sync schema in the configured Postgres."""
    substrate = SharedPostgresSubstrate(
        settings=resolve_postgres_settings(load_settings())
    )
    schema = sync_postgres_schema()
    with substrate.engine.begin() as connection:
        connection.execute(text(f"DROP SCHEMA IF EXISTS {schema} CASCADE"))
        connection.execute(text(f"CREATE SCHEMA {schema}"))
        metadata.create_all(
            connection.execution_options(schema_translate_map={None: schema})
        )
    try:
        yield DefaultSyncAuthorityService(
            settings=SyncAuthoritySettings(max_commit_attempts=5),
            repository=PostgresSyncRepository(substrate.schema_sessions(schema)),
            registry=default_registry(),
        )
    finally:
        substrate.dispose()


def _meta():
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal="operator")


def test_concurrent_retries_of_one_op_record_once(
    service: DefaultSyncAuthorityService,
) -> None:
    """Identical ops racing on separate connections should commit exactly once."""
    op = {
        "op_id": str(uuid4()),
        "entity_type": "pet",
        "entity_id": ENTITY_ID,
        "change_type": "upsert",
        "record": {"name": "Fido"},
    }

    def _push() -> list[str]:
        result = service.push(meta=_meta(), owner_id="owner-1", device_id="d", ops=[op])
        assert result.value is not None
        return result.value.accepted

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: _push(), range(4)))

    assert results == [[op["op_id"]]] * 4
    page = service.pull(meta=_meta(), owner_id="owner-1").value
    assert page is not None
    assert len(page.changes) == 1


def test_concurrent_retries_of_one_versioned_op_never_conflict(
    service: DefaultSyncAuthorityService,
) -> None:
    """Racing retries with a base version should all be accepted under strict."""
    seeded = service.push(
        meta=_meta(),
        owner_id="owner-1",
        device_id="d",
        ops=[
            {
                "op_id": str(uuid4()),
                "entity_type": "pet",
                "entity_id": ENTITY_ID,
                "change_type": "upsert",
                "record": {"name": "Fido"},
            }
        ],
    )
    assert seeded.value is not None and len(seeded.value.accepted) == 1
    op = {
        "op_id": str(uuid4()),
        "entity_type": "pet",
        "entity_id": ENTITY_ID,
        "change_type": "upsert",
        "record": {"name": "Fido Jr."},
        "base_version": 1,
    }

    def _push() -> tuple[list[str], list[str]]:
        result = service.push(meta=_meta(), owner_id="owner-1", device_id="d", ops=[op])
        assert result.value is not None
        return result.value.accepted, [item.reason for item in result.value.rejected]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: _push(), range(8)))

    assert results == [([op["op_id"]], [])] * 8
    page = service.pull(meta=_meta(), owner_id="owner-1").value
    assert page is not None
    assert [change.version for change in page.changes] == [1, 2]


def test_concurrent_writes_to_distinct_entities_keep_cursor_dense(
    service: DefaultSyncAuthorityService,
) -> None:
    """Parallel pushes for one owner should yield gapless change ids."""

    def _push(index: int) -> None:
        service.push(
            meta=_meta(),
            owner_id="owner-1",
            device_id="d",
            ops=[
                {
                    "op_id": str(uuid4()),
                    "entity_type": "document",
                    "entity_id": str(uuid4()),
                    "change_type": "upsert",
                    "record": {"index": index},
                }
            ],
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_push, range(20)))

    page = service.pull(meta=_meta(), owner_id="owner-1").value
    assert page is not None
    assert [change.change_id for change in page.changes] == list(range(1, 21))
