"""Manifest and builder for the shared Postgres substrate."""

from __future__ import annotations

from collections.abc import Mapping

from packages.petcare_shared.config import PetcareSettings
from packages.petcare_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ResourceManifest,
    register_component,
)

RESOURCE_COMPONENT_ID = ComponentId("substrate_postgres")

MANIFEST = register_component(
    ResourceManifest(
        id=RESOURCE_COMPONENT_ID,
        layer=0,
        system="state",
        kind="substrate",
        module_roots=frozenset({ModuleRoot("resources.substrates.postgres")}),
    )
)


def build_component(
    *, settings: PetcareSettings, components: Mapping[str, object]
) -> object:
    """One shared engine; the substrate depends on no other component."""
    from resources.substrates.postgres.config import resolve_postgres_settings
    from resources.substrates.postgres.substrate import SharedPostgresSubstrate

    return SharedPostgresSubstrate(settings=resolve_postgres_settings(settings))
