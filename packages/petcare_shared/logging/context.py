"""Structured fields carried on every log line of the current context.

Values are stored stringified in a ``ContextVar`` so that request fields such
as ``owner_id`` or ``trace_id`` follow the call through threads started with
``contextvars.copy_context`` and through asyncio tasks.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping

_FIELDS: ContextVar[Mapping[str, str]] = ContextVar("petcare_log_fields", default={})


def _merged(values: Mapping[str, object]) -> dict[str, str]:
    merged = dict(_FIELDS.get())
    merged.update({str(k): str(v) for k, v in values.items() if v is not None})
    return merged


def get_context() -> dict[str, str]:
    """Return a copy of the fields bound in the current context."""
    return dict(_FIELDS.get())


def bind_context(**values: object) -> None:
    """Add fields to the current context until it ends; ``None`` is skipped."""
    if values:
        _FIELDS.set(_merged(values))


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the body of the ``with`` block only."""
    token = _FIELDS.set(_merged(values))
    try:
        yield
    finally:
        _FIELDS.reset(token)
