"""Readiness probe for the Postgres shared substrate."""

from __future__ import annotations

from sqlalchemy import Engine, text

from packages.petcare_shared.logging import get_logger

_LOGGER = get_logger(__name__)


def ping(engine: Engine, *, timeout_seconds: float = 1.0) -> bool:
    """Return True when the database answers a trivial query within the timeout.

    The statement timeout is applied with ``set_config`` so it stays local to
    the probing connection's session.
    """
    timeout_ms = max(1, int(timeout_seconds * 1000))
    try:
        with engine.connect() as conn:
            if engine.dialect.name == "postgresql":
                conn.execute(
                    text(
                        "SELECT set_config('statement_timeout', :timeout_value, false)"
                    ),
                    {"timeout_value": f"{timeout_ms}ms"},
                )
            conn.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        _LOGGER.warning("Postgres ping failed: %s", type(exc).__name__)
        return False
    return True
