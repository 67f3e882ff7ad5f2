"""Shared fixtures for Sync Authority tests backed by an in-memory SQL store."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from resources.substrates.postgres.engine import create_session_factory
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from services.state.sync_authority.data.repository import PostgresSyncRepository
from services.state.sync_authority.data.runtime import sync_postgres_schema
from services.state.sync_authority.data.schema import metadata


@pytest.fixture
def sql_engine() -> Iterator[Engine]:
    """Single-connection SQLite engine with sync tables created."""
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def schema_sessions(sql_engine: Engine) -> ServiceSchemaSessionProvider:
    """Schema session provider over the in-memory engine."""
    return ServiceSchemaSessionProvider(
        session_factory=create_session_factory(sql_engine),
        schema=sync_postgres_schema(),
    )


@pytest.fixture
def repository(schema_sessions: ServiceSchemaSessionProvider) -> PostgresSyncRepository:
    """Real SQL repository bound to the in-memory store."""
    return PostgresSyncRepository(schema_sessions)
