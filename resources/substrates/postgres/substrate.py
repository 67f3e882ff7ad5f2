"""Runtime object built for the ``substrate_postgres`` component."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Engine

from resources.substrates.postgres.config import PostgresSettings
from resources.substrates.postgres.engine import (
    create_postgres_engine,
    create_session_factory,
)
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider


class PostgresHealthStatus(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


class PostgresSubstrate(Protocol):
    """What services may rely on from the shared Postgres substrate."""

    @property
    def engine(self) -> Engine: ...

    def schema_sessions(self, schema: str) -> ServiceSchemaSessionProvider: ...

    def health(self) -> PostgresHealthStatus: ...

    def dispose(self) -> None: ...


class SharedPostgresSubstrate:
    """One engine and session factory shared by every service schema."""

    def __init__(self, *, settings: PostgresSettings, engine: Engine | None = None) -> None:
        self._settings = settings
        self.engine = engine if engine is not None else create_postgres_engine(settings)
        self._sessions = create_session_factory(self.engine)

    def schema_sessions(self, schema: str) -> ServiceSchemaSessionProvider:
        return ServiceSchemaSessionProvider(session_factory=self._sessions, schema=schema)

    def health(self) -> PostgresHealthStatus:
        """Ready when ``SELECT 1`` answers within the configured timeout."""
        if ping(self.engine, timeout_seconds=self._settings.health_timeout_seconds):
            return PostgresHealthStatus(ready=True, detail="ok")
        return PostgresHealthStatus(ready=False, detail="postgres ping failed")

    def dispose(self) -> None:
        self.engine.dispose()
