"""Tests for envelope metadata creation and validation."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta, timezone

from packages.petcare_shared.envelope import (
    EnvelopeKind,
    new_meta,
    validate_meta,
)
from packages.petcare_shared.errors import ErrorCategory, codes


def test_new_meta_generates_ids_and_normalizes_naive_timestamp() -> None:
    """new_meta should create ids and attach UTC to naive timestamps."""
    timestamp = datetime(2026, 1, 1, 12, 0, 0)

    meta = new_meta(
        kind=EnvelopeKind.COMMAND,
        source="sync_http",
        principal="device-a",
        timestamp=timestamp,
    )

    assert meta.envelope_id
    assert meta.trace_id
    assert meta.parent_id == ""
    assert meta.timestamp == timestamp.replace(tzinfo=UTC)
    assert meta.kind == EnvelopeKind.COMMAND
    assert meta.source == "sync_http"
    assert meta.principal == "device-a"


def test_new_meta_normalizes_aware_timestamp_to_utc() -> None:
    """new_meta should convert aware timestamps into UTC."""
    local_tz = timezone(timedelta(hours=-5))
    timestamp = datetime(2026, 1, 1, 7, 0, 0, tzinfo=local_tz)

    meta = new_meta(
        kind=EnvelopeKind.QUERY,
        source="sync_http",
        principal="device-a",
        timestamp=timestamp,
    )

    assert meta.timestamp == datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def test_validate_meta_accepts_complete_metadata() -> None:
    """validate_meta should return no errors for well-formed metadata."""
    meta = new_meta(kind=EnvelopeKind.QUERY, source="sync_http", principal="p")

    assert validate_meta(meta) == []


def test_validate_meta_rejects_unspecified_kind() -> None:
    """validate_meta should report an unspecified kind."""
    meta = new_meta(kind=EnvelopeKind.UNSPECIFIED, source="sync_http", principal="p")

    errors = validate_meta(meta)

    assert len(errors) == 1
    assert errors[0].category == ErrorCategory.VALIDATION
    assert errors[0].code == codes.MISSING_REQUIRED_FIELD
    assert errors[0].message == "metadata.kind must be specified"


def test_validate_meta_rejects_blank_principal() -> None:
    """validate_meta should name the first missing required field."""
    meta = new_meta(kind=EnvelopeKind.QUERY, source="sync_http", principal="")

    errors = validate_meta(meta)

    assert [error.message for error in errors] == ["metadata.principal is required"]


def test_validate_meta_reports_unknown_kind_without_pydantic_prefix() -> None:
    """A kind outside the enum should read like the unspecified-kind message."""
    meta = replace(
        new_meta(kind=EnvelopeKind.QUERY, source="sync_http", principal="p"),
        kind="bogus",  # type: ignore[arg-type]
    )

    assert [error.message for error in validate_meta(meta)] == [
        "metadata.kind must be specified"
    ]
