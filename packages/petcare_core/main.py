"""Process entrypoint for Petcare core startup orchestration."""

from __future__ import annotations

import importlib
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI

from packages.petcare_core.migrations import run_startup_migrations
from packages.petcare_shared.component_loader import import_registered_component_modules
from packages.petcare_shared.config import CoreBootSettings, PetcareSettings, load_settings
from packages.petcare_shared.http import create_app, run_app
from packages.petcare_shared.logging import configure_logging, get_logger, log_context
from packages.petcare_shared.manifest import ComponentManifest, get_registry

_LOGGER = get_logger(__name__)


class SubstrateNotReadyError(RuntimeError):
    """Raised when a resource stays unhealthy after all readiness attempts."""


def _resolve_component_builder(manifest: ComponentManifest) -> Callable[..., object]:
    """Load one component module and return its build callable."""
    for module_root in sorted(manifest.module_roots):
        module = importlib.import_module(f"{module_root}.component")
        builder = getattr(module, "build_component", None)
        if callable(builder):
            return builder
    raise RuntimeError(
        f"component '{manifest.id}' does not expose build_component(...) in its component module"
    )


def _resolve_service_http_registrar(
    manifest: ComponentManifest,
    *,
    repo_root: Path,
) -> Callable[..., None] | None:
    """Load one optional service-level HTTP registrar from ``api.py``."""
    for module_root in sorted(manifest.module_roots):
        candidate = repo_root / Path(*str(module_root).split(".")) / "api.py"
        if not candidate.exists():
            continue
        module = importlib.import_module(f"{module_root}.api")
        registrar = getattr(module, "register_routes", None)
        if callable(registrar):
            return registrar
    return None


def instantiate_registered_components(settings: PetcareSettings) -> dict[str, object]:
    """Instantiate all registered resources and services by registry walk.

    A builder raising ``KeyError`` is waiting on a component that has not been
    built yet and is retried in the next round.
    """
    registry = get_registry()
    pending = [*registry.list_resources(), *registry.list_services()]
    built: dict[str, object] = {}

    while pending:
        progressed = False
        next_round: list[ComponentManifest] = []
        for manifest in pending:
            builder = _resolve_component_builder(manifest)
            try:
                built[str(manifest.id)] = builder(settings=settings, components=built)
            except KeyError:
                next_round.append(manifest)
                continue
            progressed = True
            with log_context({"component_id": str(manifest.id), "layer": manifest.layer}):
                _LOGGER.info("Component instantiated")

        if not progressed:
            unresolved = ", ".join(str(item.id) for item in next_round)
            raise RuntimeError(
                "unable to resolve component dependency graph; unresolved components: "
                f"{unresolved}"
            )
        pending = next_round
    return built


def wait_for_substrates(
    components: Mapping[str, object],
    *,
    settings: CoreBootSettings,
    sleeper: Callable[[float], None] = time.sleep,
) -> None:
    """Poll each built resource ``health()`` until ready or attempts run out."""
    registry = get_registry()
    for manifest in registry.list_resources():
        component = components.get(str(manifest.id))
        probe = getattr(component, "health", None)
        if not callable(probe):
            continue
        for attempt in range(1, settings.boot_retry_attempts + 1):
            status: Any = probe()
            if bool(getattr(status, "ready", False)):
                break
            with log_context({"component_id": str(manifest.id), "attempt": attempt}):
                _LOGGER.warning("Substrate not ready")
            if attempt < settings.boot_retry_attempts and settings.boot_retry_delay_seconds > 0:
                sleeper(settings.boot_retry_delay_seconds)
        else:
            raise SubstrateNotReadyError(
                f"substrate '{manifest.id}' not ready after "
                f"{settings.boot_retry_attempts} attempts"
            )


def build_http_app(
    *,
    components: Mapping[str, object],
    repo_root: Path | None = None,
) -> FastAPI:
    """Create the HTTP app and register every service route module."""
    root = (repo_root or Path.cwd()).resolve()
    app = create_app(title="Petcare Sync API")
    router = APIRouter()

    registered: list[str] = []
    for manifest in sorted(get_registry().list_services(), key=lambda m: str(m.id)):
        service = components.get(str(manifest.id))
        registrar = _resolve_service_http_registrar(manifest, repo_root=root)
        if service is None or registrar is None:
            continue
        registrar(router=router, service=service)
        registered.append(str(manifest.id))

    app.include_router(router)
    with log_context({"registered_services": ",".join(registered)}):
        _LOGGER.info("HTTP routes registered")
    return app


def main() -> None:
    """Load settings, build components, migrate, and serve HTTP."""
    settings = load_settings()
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
    )

    imported = import_registered_component_modules()
    registry = get_registry()
    registry.assert_valid()
    with log_context(
        {
            "imported_count": len(imported),
            "service_count": len(registry.list_services()),
            "resource_count": len(registry.list_resources()),
        }
    ):
        _LOGGER.info("Component registration completed")

    components = instantiate_registered_components(settings)
    boot_settings = settings.components.core_boot
    wait_for_substrates(components, settings=boot_settings)
    if boot_settings.run_migrations_on_startup:
        run_startup_migrations(settings=settings)

    app = build_http_app(components=components)
    with log_context({"host": settings.http.host, "port": settings.http.port}):
        _LOGGER.info("Petcare core startup completed")
    try:
        run_app(app, host=settings.http.host, port=settings.http.port)
    finally:
        for component in components.values():
            dispose = getattr(component, "dispose", None)
            if callable(dispose):
                dispose()


if __name__ == "__main__":
    main()
