"""create sync authority tables"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from services.state.sync_authority.data.runtime import sync_postgres_schema

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _schema() -> str:
    """Resolve the canonical sync-owned schema name."""
    return sync_postgres_schema()


def upgrade() -> None:
    """Create entity store, change ledger and per-owner sequence tables."""
    schema = _schema()

    op.create_table(
        "entity_states",
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("record", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint(
            "owner_id", "entity_type", "entity_id", name="pk_entity_states"
        ),
        sa.CheckConstraint("version >= 1", name="ck_entity_states_version_positive"),
        schema=schema,
    )

    op.create_table(
        "change_ledger",
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("change_id", sa.BigInteger(), nullable=False, autoincrement=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("change_type", sa.String(length=16), nullable=False),
        sa.Column("record", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("client_ts", sa.DateTime(timezone=True), nullable=True),
        sa.Column("device_id", sa.String(length=128), nullable=False),
        sa.Column("op_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("owner_id", "change_id", name="pk_change_ledger"),
        sa.UniqueConstraint("op_id", name="uq_change_ledger_op_id"),
        sa.UniqueConstraint(
            "owner_id",
            "entity_type",
            "entity_id",
            "version",
            name="uq_change_ledger_entity_version",
        ),
        sa.CheckConstraint(
            "change_type IN ('upsert', 'delete')",
            name="ck_change_ledger_change_type",
        ),
        schema=schema,
    )
    op.create_index(
        "ix_change_ledger_owner_type_change",
        "change_ledger",
        ["owner_id", "entity_type", "change_id"],
        unique=False,
        schema=schema,
    )

    op.create_table(
        "owner_sequences",
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("last_change_id", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("owner_id", name="pk_owner_sequences"),
        sa.CheckConstraint("last_change_id >= 1", name="ck_owner_sequences_positive"),
        schema=schema,
    )


def downgrade() -> None:
    """Drop sync authority schema objects."""
    schema = _schema()
    op.drop_table("owner_sequences", schema=schema)
    op.drop_index(
        "ix_change_ledger_owner_type_change",
        table_name="change_ledger",
        schema=schema,
    )
    op.drop_table("change_ledger", schema=schema)
    op.drop_table("entity_states", schema=schema)
