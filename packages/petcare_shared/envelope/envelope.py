"""Result envelope returned by every public service method.

An envelope pairs request metadata with either a payload, a list of errors,
or both. ``Payload`` wraps the value so that a successful ``None`` result is
distinguishable from a missing payload.
"""

from __future__ import annotations

from typing import Generic, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from packages.petcare_shared.errors import ErrorDetail

from .meta import EnvelopeMeta

T = TypeVar("T")


class Payload(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True, extra="forbid")

    value: T


class Envelope(BaseModel, Generic[T]):
    """Immutable service result: metadata, optional payload and errors."""

    model_config = ConfigDict(frozen=True)

    metadata: EnvelopeMeta
    payload: Payload[T] | None
    errors: list[ErrorDetail] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def value(self) -> T | None:
        """Payload value, or ``None`` when the envelope carries no payload."""
        return self.payload.value if self.payload is not None else None


def success(*, meta: EnvelopeMeta, payload: T) -> Envelope[T]:
    return Envelope[T](metadata=meta, payload=Payload[T](value=payload))


def failure(
    *,
    meta: EnvelopeMeta,
    errors: Iterable[ErrorDetail],
    payload: T | None = None,
) -> Envelope[T]:
    """Build an error envelope; a partial ``payload`` may ride along."""
    return Envelope[T](
        metadata=meta,
        payload=Payload[T](value=payload) if payload is not None else None,
        errors=list(errors),
    )
