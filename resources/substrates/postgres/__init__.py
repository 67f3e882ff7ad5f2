"""Shared Postgres substrate: settings, engine, schema sessions, health."""

from resources.substrates.postgres.component import MANIFEST, RESOURCE_COMPONENT_ID
from resources.substrates.postgres.config import PostgresSettings, resolve_postgres_settings
from resources.substrates.postgres.engine import create_postgres_engine, create_session_factory
from resources.substrates.postgres.errors import normalize_postgres_error
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider

__all__ = [
    "create_postgres_engine",
    "create_session_factory",
    "MANIFEST",
    "normalize_postgres_error",
    "ping",
    "PostgresSettings",
    "resolve_postgres_settings",
    "RESOURCE_COMPONENT_ID",
    "ServiceSchemaSessionProvider",
]
