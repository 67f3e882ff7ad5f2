"""SQLAlchemy table definitions owned by Sync Authority Service.

Tables are declared without a schema; sessions pin ``search_path`` to the
service schema on PostgreSQL.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB

from packages.petcare_shared.ids import uuid_string_column

OWNER_ID_LENGTH = 128
ENTITY_TYPE_LENGTH = 64
DEVICE_ID_LENGTH = 128

metadata = MetaData()

RecordJson = JSON(none_as_null=True).with_variant(
    JSONB(none_as_null=True), "postgresql"
)

entity_states = Table(
    "entity_states",
    metadata,
    Column("owner_id", String(OWNER_ID_LENGTH), nullable=False),
    Column("entity_type", String(ENTITY_TYPE_LENGTH), nullable=False),
    uuid_string_column("entity_id"),
    Column("record", RecordJson, nullable=True),
    Column("version", Integer, nullable=False),
    Column("deleted", Boolean, nullable=False, default=False),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    PrimaryKeyConstraint(
        "owner_id", "entity_type", "entity_id", name="pk_entity_states"
    ),
    CheckConstraint("version >= 1", name="ck_entity_states_version_positive"),
)

change_ledger = Table(
    "change_ledger",
    metadata,
    Column("owner_id", String(OWNER_ID_LENGTH), nullable=False),
    Column("change_id", BigInteger, nullable=False, autoincrement=False),
    Column("entity_type", String(ENTITY_TYPE_LENGTH), nullable=False),
    uuid_string_column("entity_id"),
    Column("change_type", String(16), nullable=False),
    Column("record", RecordJson, nullable=True),
    Column("version", Integer, nullable=False),
    Column("client_ts", DateTime(timezone=True), nullable=True),
    Column("device_id", String(DEVICE_ID_LENGTH), nullable=False),
    uuid_string_column("op_id"),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    PrimaryKeyConstraint("owner_id", "change_id", name="pk_change_ledger"),
    UniqueConstraint("op_id", name="uq_change_ledger_op_id"),
    UniqueConstraint(
        "owner_id",
        "entity_type",
        "entity_id",
        "version",
        name="uq_change_ledger_entity_version",
    ),
    CheckConstraint(
        "change_type IN ('upsert', 'delete')",
        name="ck_change_ledger_change_type",
    ),
    Index(
        "ix_change_ledger_owner_type_change",
        "owner_id",
        "entity_type",
        "change_id",
    ),
)

owner_sequences = Table(
    "owner_sequences",
    metadata,
    Column("owner_id", String(OWNER_ID_LENGTH), primary_key=True),
    Column("last_change_id", BigInteger, nullable=False),
    CheckConstraint("last_change_id >= 1", name="ck_owner_sequences_positive"),
)
