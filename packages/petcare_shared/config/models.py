"""Typed configuration models for Petcare runtime settings.

Component settings live under ``components.<kind>.<name>`` where ``kind`` is
``service`` or ``substrate``; a component id such as ``service_sync_authority``
maps onto that path. Each component validates its own subtree with its own
model via ``resolve_component_settings``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "petcare" / "petcare.yaml"
COMPONENT_KINDS = ("service", "substrate")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


class LoggingSettings(BaseModel):
    """Root logger level, output format and static service labels."""

    level: LogLevel = "INFO"
    json_output: bool = True
    service: str = "petcare"
    environment: str = "dev"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class TelemetrySettings(BaseModel):
    """OpenTelemetry scope and instrument names for public API calls."""

    instrumentation_scope: str = "petcare.public_api"
    calls_metric: str = "petcare_public_api_calls_total"
    duration_metric: str = "petcare_public_api_duration_ms"
    errors_metric: str = "petcare_public_api_errors_total"


class HttpSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, gt=0, le=65535)


class CoreBootSettings(BaseModel):
    """Startup behaviour read from ``components.core_boot``."""

    run_migrations_on_startup: bool = True
    boot_retry_attempts: int = Field(default=3, gt=0)
    boot_retry_delay_seconds: float = Field(default=0.5, ge=0)


class ComponentsSettings(BaseModel):
    """The ``components`` subtree; unknown component sections stay raw."""

    model_config = ConfigDict(extra="allow")

    core_boot: CoreBootSettings = Field(default_factory=CoreBootSettings)
    service: dict[str, Any] = Field(default_factory=dict)
    substrate: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _require_namespaced_keys(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        for key in value:
            kind, separator, name = str(key).partition("_")
            if separator and kind in COMPONENT_KINDS:
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value

    def section(self, component_id: str) -> tuple[str, object]:
        """Return the dotted path and raw value configured for one component."""
        kind, separator, name = component_id.partition("_")
        if not separator or kind not in COMPONENT_KINDS:
            return f"components.{component_id}", (self.model_extra or {}).get(
                component_id, {}
            )
        namespace = getattr(self, kind)
        if not isinstance(namespace, dict):
            raise TypeError(f"components.{kind} must resolve to an object mapping")
        return f"components.{kind}.{name}", namespace.get(name, {})


class PetcareSettings(BaseSettings):
    """Root settings: keyword overrides, then ``PETCARE_`` env, then YAML."""

    model_config = SettingsConfigDict(
        env_prefix="PETCARE_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_source = YamlConfigSettingsSource(
            settings_cls, yaml_file=cls._config_path, yaml_file_encoding="utf-8"
        )
        return init_settings, env_settings, yaml_source


def resolve_component_settings(
    *,
    settings: PetcareSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Validate one component's configured section against its own model."""
    path, raw = settings.components.section(component_id)
    if not isinstance(raw, dict):
        raise TypeError(f"{path} must resolve to an object mapping")
    return model.model_validate(raw)
