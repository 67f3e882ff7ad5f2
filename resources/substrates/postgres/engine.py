"""Engine and session factory for the shared Postgres substrate.

Transactions run at READ COMMITTED: a statement that waited on a row lock
reads rows committed by the transaction it waited for. The sync repository
depends on that when it re-reads after ``SELECT ... FOR UPDATE``.
"""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from resources.substrates.postgres.config import PostgresSettings

ISOLATION_LEVEL = "READ COMMITTED"


def create_postgres_engine(config: PostgresSettings) -> Engine:
    return create_engine(
        config.url,
        isolation_level=ISOLATION_LEVEL,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout_seconds,
        pool_pre_ping=config.pool_pre_ping,
        connect_args={
            "connect_timeout": int(config.connect_timeout_seconds),
            "sslmode": config.sslmode,
        },
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions keep loaded rows readable after commit."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
