"""Pydantic settings for Sync Authority Service behavior."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from packages.petcare_shared.config import PetcareSettings, resolve_component_settings
from services.state.sync_authority.component import SERVICE_COMPONENT_ID

ConflictPolicyName = Literal["strict", "last_write_wins"]


class SyncAuthoritySettings(BaseModel):
    """Sync Authority Service runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pull_default_limit: int = Field(default=500, gt=0)
    pull_max_limit: int = Field(default=500, gt=0)
    default_conflict_policy: ConflictPolicyName = "strict"
    conflict_policies: dict[str, ConflictPolicyName] = Field(default_factory=dict)
    max_commit_attempts: int = Field(default=3, gt=0, le=10)
    default_device_id: str = "unknown"

    @field_validator("default_device_id")
    @classmethod
    def _validate_default_device_id(cls, value: str) -> str:
        """Require a non-blank fallback device id."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("default_device_id is required")
        return normalized

    @model_validator(mode="after")
    def _validate_pull_limits(self) -> "SyncAuthoritySettings":
        """Keep the default page size within the hard cap."""
        if self.pull_default_limit > self.pull_max_limit:
            raise ValueError("pull_default_limit must be <= pull_max_limit")
        return self


def resolve_sync_authority_settings(
    settings: PetcareSettings,
) -> SyncAuthoritySettings:
    """Resolve settings from ``components.service.sync_authority``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=SyncAuthoritySettings,
    )
