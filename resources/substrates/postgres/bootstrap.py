"""Create each registered service's schema before Alembic runs.

Alembic environments set ``search_path`` to the service schema, so the
schema must exist before the first upgrade.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import text

from packages.petcare_shared.component_loader import import_registered_component_modules
from packages.petcare_shared.config import PetcareSettings, load_settings
from packages.petcare_shared.logging import get_logger, log_context
from packages.petcare_shared.manifest import get_registry
from resources.substrates.postgres.config import resolve_postgres_settings
from resources.substrates.postgres.engine import create_postgres_engine

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class BootstrapResult:
    imported_components: tuple[str, ...]
    provisioned_schemas: tuple[str, ...]


def bootstrap_service_schemas(settings: PetcareSettings | None = None) -> BootstrapResult:
    """Run ``CREATE SCHEMA IF NOT EXISTS`` for every registered service."""
    settings = settings or load_settings()
    imported = import_registered_component_modules()
    registry = get_registry()
    registry.assert_valid()
    schemas = tuple(service.schema_name for service in registry.list_services())
    if not schemas:
        raise RuntimeError("no registered services discovered; refusing schema bootstrap")

    engine = create_postgres_engine(resolve_postgres_settings(settings))
    try:
        with engine.begin() as connection:
            for schema in schemas:
                connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
    finally:
        engine.dispose()

    with log_context({"schemas": ",".join(schemas)}):
        _LOGGER.info("Provisioned service schemas")
    return BootstrapResult(imported_components=imported, provisioned_schemas=schemas)
