"""Tests for Postgres substrate readiness probes and schema sessions."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, text

from resources.substrates.postgres.config import PostgresSettings
from resources.substrates.postgres.engine import create_session_factory
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from resources.substrates.postgres.substrate import SharedPostgresSubstrate


class _FakeConnection:
    """Minimal context-managed connection double capturing execute calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object] | None]] = []

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb

    def execute(self, statement, params=None) -> None:
        self.calls.append((str(statement), params))


class _FakeDialect:
    name = "postgresql"


class _FakeEngine:
    """Minimal engine double exposing ``connect`` and a dialect name."""

    dialect = _FakeDialect()

    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn

    def connect(self) -> _FakeConnection:
        return self._conn


def test_ping_applies_statement_timeout_on_postgres() -> None:
    """Ping should set statement timeout with set_config then run SELECT 1."""
    conn = _FakeConnection()

    assert ping(_FakeEngine(conn), timeout_seconds=1.2) is True
    assert conn.calls[0] == (
        "SELECT set_config('statement_timeout', :timeout_value, false)",
        {"timeout_value": "1200ms"},
    )
    assert conn.calls[1] == ("SELECT 1", None)


def test_ping_returns_false_when_query_fails() -> None:
    """Ping should degrade cleanly on probe exceptions."""

    class _FailingConnection(_FakeConnection):
        def execute(self, statement, params=None) -> None:
            del statement, params
            raise RuntimeError("boom")

    assert ping(_FakeEngine(_FailingConnection()), timeout_seconds=1.0) is False


def test_substrate_health_reports_ready_for_sqlite_engine() -> None:
    """Substrate health should answer from a real engine probe."""
    engine = create_engine("sqlite+pysqlite:///:memory:")
    substrate = SharedPostgresSubstrate(settings=PostgresSettings(), engine=engine)
    try:
        status = substrate.health()
    finally:
        substrate.dispose()

    assert status.ready is True
    assert status.detail == "ok"


def test_schema_session_provider_commits_and_rolls_back() -> None:
    """Sessions should commit on success and roll back on exception."""
    engine = create_engine("sqlite+pysqlite:///:memory:")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE marks (value INTEGER)"))
    provider = ServiceSchemaSessionProvider(
        session_factory=create_session_factory(engine),
        schema="service_sync_authority",
    )

    with provider.session() as db:
        db.execute(text("INSERT INTO marks (value) VALUES (1)"))
    with pytest.raises(RuntimeError):
        with provider.session() as db:
            db.execute(text("INSERT INTO marks (value) VALUES (2)"))
            raise RuntimeError("abort")

    with provider.session() as db:
        values = db.execute(text("SELECT value FROM marks")).scalars().all()
    assert values == [1]


def test_schema_session_provider_rejects_malformed_schema_names() -> None:
    """Schema names feed search_path and must be identifier-safe."""
    factory = create_session_factory(create_engine("sqlite+pysqlite:///:memory:"))
    with pytest.raises(ValueError):
        ServiceSchemaSessionProvider(session_factory=factory, schema="bad;drop")
    with pytest.raises(ValueError):
        ServiceSchemaSessionProvider(session_factory=factory, schema="")
