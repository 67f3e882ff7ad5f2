"""Public API for Petcare core startup orchestration."""

from packages.petcare_core.migrations import (
    MigrationExecutionError,
    MigrationRunResult,
    discover_service_migration_configs,
    run_startup_migrations,
)

__all__ = [
    "MigrationExecutionError",
    "MigrationRunResult",
    "discover_service_migration_configs",
    "run_startup_migrations",
]
