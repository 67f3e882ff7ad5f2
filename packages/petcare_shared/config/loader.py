"""Settings loading with deterministic precedence.

The cascade is always:
1) explicit keyword overrides
2) environment variables (``PETCARE_`` prefix, ``__`` nesting)
3) the YAML config file (``~/.config/petcare/petcare.yaml`` by default)
4) model defaults

Example: ``PETCARE_LOGGING__LEVEL=DEBUG`` -> ``logging.level = "DEBUG"``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar

from .models import DEFAULT_CONFIG_PATH, PetcareSettings


def load_settings(
    *,
    config_path: str | Path | None = None,
    **overrides: Any,
) -> PetcareSettings:
    """Load root settings, optionally from an alternate YAML file path."""
    resolved = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if resolved == PetcareSettings._config_path:
        return PetcareSettings(**overrides)

    class _PathBoundSettings(PetcareSettings):
        _config_path: ClassVar[Path] = resolved

    return _PathBoundSettings(**overrides)
