"""Component manifests and the process-wide registry that collects them.

Every resource and service declares a ``MANIFEST`` in its ``component.py``.
Importing those modules fills the registry; boot code then walks it to build
components, provision service schemas and order migrations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from threading import RLock
from typing import FrozenSet, Iterable, Literal, NewType, Optional

ComponentId = NewType("ComponentId", str)
ModuleRoot = NewType("ModuleRoot", str)

System = Literal["state", "action"]

_SYSTEM_ORDER = {"state": 0, "action": 1}
_COMPONENT_ID = re.compile(r"[a-z][a-z0-9_]{1,62}")
_MODULE_ROOT = re.compile(r"[A-Za-z_]\w*(\.[A-Za-z_]\w*)*", re.ASCII)


class ManifestError(ValueError):
    """Invalid manifest declaration or conflicting registration."""


def _check_id(value: str) -> None:
    if not _COMPONENT_ID.fullmatch(str(value)):
        raise ManifestError(
            f"invalid component id '{value}'; expected ^[a-z][a-z0-9_]{{1,62}}$"
        )


def _check_roots(roots: Iterable[ModuleRoot], label: str) -> None:
    roots = tuple(roots)
    if not roots:
        raise ManifestError(f"{label} must not be empty")
    for root in roots:
        if not _MODULE_ROOT.fullmatch(str(root)):
            raise ManifestError(f"invalid module root '{root}'")


@dataclass(frozen=True, slots=True)
class ComponentManifest:
    id: ComponentId
    layer: Literal[0, 1]
    system: System
    module_roots: FrozenSet[ModuleRoot]

    def __post_init__(self) -> None:
        _check_id(self.id)
        _check_roots(self.module_roots, "module_roots")


@dataclass(frozen=True, slots=True)
class ResourceManifest(ComponentManifest):
    """Layer-0 substrate, optionally owned by exactly one service."""

    layer: Literal[0]
    kind: Literal["substrate"]
    owner_service_id: Optional[ComponentId] = None

    def __post_init__(self) -> None:
        super(ResourceManifest, self).__post_init__()
        if self.owner_service_id is not None:
            _check_id(self.owner_service_id)


@dataclass(frozen=True, slots=True)
class ServiceManifest(ComponentManifest):
    """Layer-1 service; its Postgres schema is named after its id."""

    layer: Literal[1]
    public_api_roots: FrozenSet[ModuleRoot]

    def __post_init__(self) -> None:
        super(ServiceManifest, self).__post_init__()
        _check_roots(self.public_api_roots, "public_api_roots")

    @property
    def schema_name(self) -> str:
        return str(self.id)


class ManifestRegistry:
    """Thread-safe map of component id to manifest."""

    def __init__(self) -> None:
        self._by_id: dict[ComponentId, ComponentManifest] = {}
        self._lock = RLock()

    def register_component(self, manifest: ComponentManifest) -> None:
        """Add ``manifest``; re-registering an identical manifest is a no-op."""
        with self._lock:
            if self._by_id.setdefault(manifest.id, manifest) != manifest:
                raise ManifestError(
                    f"duplicate component id with mismatched definition: {manifest.id}"
                )

    def list_resources(self) -> tuple[ResourceManifest, ...]:
        with self._lock:
            found = [m for m in self._by_id.values() if isinstance(m, ResourceManifest)]
        return tuple(sorted(found, key=lambda m: str(m.id)))

    def list_services(self) -> tuple[ServiceManifest, ...]:
        """Services in system order (state before action), then by id."""
        with self._lock:
            found = [m for m in self._by_id.values() if isinstance(m, ServiceManifest)]
        return tuple(sorted(found, key=lambda m: (_SYSTEM_ORDER[m.system], str(m.id))))

    def assert_valid(self) -> None:
        """Fail when a resource names an owner service that is not registered."""
        services = {service.id for service in self.list_services()}
        for resource in self.list_resources():
            owner = resource.owner_service_id
            if owner is not None and owner not in services:
                raise ManifestError(
                    f"resource '{resource.id}' references unknown owner service '{owner}'"
                )


_REGISTRY = ManifestRegistry()


def register_component(manifest: ComponentManifest) -> ComponentManifest:
    _REGISTRY.register_component(manifest)
    return manifest


def get_registry() -> ManifestRegistry:
    return _REGISTRY
