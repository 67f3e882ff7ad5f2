"""Tests for component manifest validation and registry behavior."""

from __future__ import annotations

from pathlib import Path

import pytest

from packages.petcare_shared.component_loader import discover_component_modules
from packages.petcare_shared.manifest import (
    ComponentId,
    ManifestError,
    ManifestRegistry,
    ModuleRoot,
    ResourceManifest,
    ServiceManifest,
)


def _service(component_id: str = "service_sync_authority", **overrides) -> ServiceManifest:
    values = {
        "id": ComponentId(component_id),
        "layer": 1,
        "system": "state",
        "module_roots": frozenset({ModuleRoot("services.state.sync_authority")}),
        "public_api_roots": frozenset({ModuleRoot("services.state.sync_authority")}),
    }
    values.update(overrides)
    return ServiceManifest(**values)


def _resource(owner: str | None = None) -> ResourceManifest:
    return ResourceManifest(
        id=ComponentId("substrate_postgres"),
        layer=0,
        system="state",
        module_roots=frozenset({ModuleRoot("resources.substrates.postgres")}),
        kind="substrate",
        owner_service_id=None if owner is None else ComponentId(owner),
    )


@pytest.mark.parametrize("component_id", ["Service", "s", "1service", "service-sync"])
def test_invalid_component_ids_are_rejected(component_id: str) -> None:
    """Component ids must be schema-safe lowercase identifiers."""
    with pytest.raises(ManifestError):
        _service(component_id)


def test_service_requires_public_api_roots() -> None:
    """Services must declare at least one public API root."""
    with pytest.raises(ManifestError):
        _service(public_api_roots=frozenset())


def test_service_schema_name_matches_component_id() -> None:
    """Service schemas should be named after the owning component."""
    assert _service().schema_name == "service_sync_authority"


def test_registry_rejects_conflicting_duplicates() -> None:
    """Re-registering an id with a different definition should fail."""
    registry = ManifestRegistry()
    registry.register_component(_service())
    registry.register_component(_service())

    with pytest.raises(ManifestError, match="duplicate component id"):
        registry.register_component(_service(system="action"))


def test_registry_lists_by_kind_and_validates_owners() -> None:
    """Resources and services should list separately; owners must exist."""
    registry = ManifestRegistry()
    registry.register_component(_resource(owner="service_missing"))
    registry.register_component(_service())

    assert [str(item.id) for item in registry.list_resources()] == ["substrate_postgres"]
    assert [str(item.id) for item in registry.list_services()] == [
        "service_sync_authority"
    ]
    with pytest.raises(ManifestError, match="unknown owner service"):
        registry.assert_valid()


def test_registry_lists_state_services_before_action_services() -> None:
    """Service order should follow system first, then component id."""
    registry = ManifestRegistry()
    registry.register_component(_service("service_alpha", system="action"))
    registry.register_component(_service("service_zeta"))
    registry.register_component(_service("service_beta"))

    assert [str(item.id) for item in registry.list_services()] == [
        "service_beta",
        "service_zeta",
        "service_alpha",
    ]


def test_discover_component_modules_finds_declaring_modules(tmp_path: Path) -> None:
    """Only ``component.py`` files that register a manifest should be discovered."""
    declaring = tmp_path / "services" / "state" / "demo" / "component.py"
    plain = tmp_path / "resources" / "substrates" / "other" / "component.py"
    in_tests = tmp_path / "services" / "state" / "demo" / "tests" / "component.py"
    for path in (declaring, plain, in_tests):
        path.parent.mkdir(parents=True, exist_ok=True)
    declaring.write_text("MANIFEST = register_component(...)\n", encoding="utf-8")
    plain.write_text("VALUE = 1\n", encoding="utf-8")
    in_tests.write_text("MANIFEST = register_component(...)\n", encoding="utf-8")

    assert discover_component_modules(repo_root=tmp_path) == (
        "services.state.demo.component",
    )
