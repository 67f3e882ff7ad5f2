"""SQLAlchemy helpers for UUID-keyed columns."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Column, String

from .uuid import UUID_STRING_LENGTH


def uuid_string_column(name: str, **kwargs: Any) -> Column[str]:
    """Return a column storing canonical UUID strings.

    Plain fixed-width text keeps the table definitions portable between
    PostgreSQL and the SQLite engines used by tests.
    """
    kwargs.setdefault("nullable", False)
    return Column(name, String(UUID_STRING_LENGTH), **kwargs)
