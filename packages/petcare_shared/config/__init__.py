"""Root settings model, its loader and per-component resolution."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    CoreBootSettings,
    HttpSettings,
    LoggingSettings,
    PetcareSettings,
    TelemetrySettings,
    resolve_component_settings,
)

__all__ = [
    "ComponentsSettings",
    "CoreBootSettings",
    "DEFAULT_CONFIG_PATH",
    "HttpSettings",
    "load_settings",
    "LoggingSettings",
    "PetcareSettings",
    "resolve_component_settings",
    "TelemetrySettings",
]
