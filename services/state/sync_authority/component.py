"""Component declaration for Sync Authority Service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.petcare_shared.config import PetcareSettings
from packages.petcare_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_sync_authority")
POSTGRES_COMPONENT_ID = "substrate_postgres"

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="state",
        module_roots=frozenset({ModuleRoot("services.state.sync_authority")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.state.sync_authority.service")}
        ),
    )
)


def build_component(
    *, settings: PetcareSettings, components: Mapping[str, object]
) -> object:
    """Build the runtime instance; raises ``KeyError`` until Postgres is built."""
    from services.state.sync_authority.service import build_sync_authority_service

    return build_sync_authority_service(
        settings=settings,
        postgres=components[POSTGRES_COMPONENT_ID],
    )
