"""Envelope metadata and typed result envelopes for Petcare services."""

from .envelope import Envelope, Payload, failure, success
from .meta import EnvelopeKind, EnvelopeMeta, new_meta
from .validate import validate_meta

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "failure",
    "new_meta",
    "Payload",
    "success",
    "validate_meta",
]
