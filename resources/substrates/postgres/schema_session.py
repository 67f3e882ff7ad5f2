"""Transactions pinned to one service-owned Postgres schema."""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

_SCHEMA_NAME = re.compile(r"^[A-Za-z0-9_]+$")


class ServiceSchemaSessionProvider:
    """Hand out one committed-or-rolled-back session per ``with`` block.

    On PostgreSQL the transaction starts with ``SET LOCAL search_path`` so
    unqualified table names resolve inside the service schema. SQLite has no
    schemas and gets the plain transaction.
    """

    def __init__(self, *, session_factory: sessionmaker[Session], schema: str) -> None:
        if not schema:
            raise ValueError("postgres schema is required")
        if not _SCHEMA_NAME.match(schema):
            raise ValueError("postgres schema must be alphanumeric/underscore")
        self._session_factory = session_factory
        self._schema = schema
        bind = session_factory.kw.get("bind")
        self._pin_search_path = bind is not None and bind.dialect.name == "postgresql"

    @property
    def schema(self) -> str:
        return self._schema

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            if self._pin_search_path:
                db.execute(text(f"SET LOCAL search_path TO {self._schema}, public"))
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
