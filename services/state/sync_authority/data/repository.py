"""Authoritative Postgres repository for the entity store and change ledger."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from resources.substrates.postgres.schema_session import ServiceSchemaSessionProvider
from services.state.sync_authority.domain import (
    ChangeRecord,
    ChangeType,
    EntityState,
    MutationOutcome,
    MutationStatus,
)
from services.state.sync_authority.interfaces import (
    MutationCommand,
    StaleEntityError,
    SyncRepository,
)
from services.state.sync_authority.policy import ConflictPolicy
from services.state.sync_authority.registry import RecordMerger

from .schema import change_ledger, entity_states, owner_sequences
from .sequence import CounterTableSequenceAllocator, SequenceAllocator


class PostgresSyncRepository(SyncRepository):
    """SQL repository over the sync-owned schema tables."""

    def __init__(
        self,
        sessions: ServiceSchemaSessionProvider,
        *,
        allocator: SequenceAllocator | None = None,
    ) -> None:
        self._sessions = sessions
        self._allocator = allocator or CounterTableSequenceAllocator()

    def mutate(
        self,
        *,
        command: MutationCommand,
        policy: ConflictPolicy,
        merger: RecordMerger,
    ) -> MutationOutcome:
        """Apply one mutation to the entity store and ledger in one transaction."""
        with self._sessions.session() as session:
            known = _known_op_outcome(session, command=command)
            if known is not None:
                return known

            row = (
                session.execute(
                    select(entity_states)
                    .where(*_entity_key(command))
                    .with_for_update()
                )
                .mappings()
                .one_or_none()
            )
            # A retry of the same op may have committed while this one waited
            # on the row lock; the fresh read sees it under READ COMMITTED.
            known = _known_op_outcome(session, command=command)
            if known is not None:
                return known

            current_version = 0 if row is None else int(row["version"])
            decision = policy.evaluate(
                base_version=command.base_version,
                current_version=current_version,
            )
            if not decision.proceed:
                return MutationOutcome(
                    status=MutationStatus.CONFLICT,
                    current_version=current_version,
                )

            next_version = current_version + 1
            if command.change_type is ChangeType.UPSERT:
                current_record = None
                if row is not None and not row["deleted"]:
                    current_record = row["record"]
                record: dict[str, Any] | None = merger.merge(
                    current_record, command.record or {}
                )
            else:
                record = None

            now = datetime.now(UTC)
            _write_entity(
                session,
                command=command,
                exists=row is not None,
                current_version=current_version,
                next_version=next_version,
                record=record,
                now=now,
            )

            # Last step before the ledger insert; see sequence module.
            change_id = self._allocator.allocate(session, owner_id=command.owner_id)
            values = {
                "owner_id": command.owner_id,
                "change_id": change_id,
                "entity_type": command.entity_type,
                "entity_id": command.entity_id,
                "change_type": command.change_type.value,
                "record": record,
                "version": next_version,
                "client_ts": command.client_ts,
                "device_id": command.device_id,
                "op_id": command.op_id,
                "created_at": now,
            }
            session.execute(insert(change_ledger).values(**values))
            return MutationOutcome(
                status=MutationStatus.APPLIED,
                change=_to_change(values),
                current_version=next_version,
                overrode_version=current_version if decision.conflict else None,
            )

    def list_changes(
        self,
        *,
        owner_id: str,
        since: int,
        limit: int,
        entity_types: Sequence[str] | None = None,
    ) -> list[ChangeRecord]:
        """Read ledger entries after ``since`` in ascending ``change_id`` order."""
        stmt = select(change_ledger).where(
            change_ledger.c.owner_id == owner_id,
            change_ledger.c.change_id > since,
        )
        if entity_types is not None:
            stmt = stmt.where(change_ledger.c.entity_type.in_(tuple(entity_types)))
        stmt = stmt.order_by(change_ledger.c.change_id.asc()).limit(limit)
        with self._sessions.session() as session:
            rows = session.execute(stmt).mappings().all()
            return [_to_change(row) for row in rows]

    def get_entity(
        self, *, owner_id: str, entity_type: str, entity_id: str
    ) -> EntityState | None:
        """Read one entity row, tombstones included."""
        with self._sessions.session() as session:
            row = (
                session.execute(
                    select(entity_states).where(
                        entity_states.c.owner_id == owner_id,
                        entity_states.c.entity_type == entity_type,
                        entity_states.c.entity_id == entity_id,
                    )
                )
                .mappings()
                .one_or_none()
            )
            return None if row is None else _to_entity(row)

    def list_entities(
        self,
        *,
        owner_id: str,
        entity_type: str,
        include_deleted: bool = False,
    ) -> list[EntityState]:
        """List current entity rows of one type for one owner."""
        stmt = select(entity_states).where(
            entity_states.c.owner_id == owner_id,
            entity_states.c.entity_type == entity_type,
        )
        if not include_deleted:
            stmt = stmt.where(entity_states.c.deleted.is_(False))
        stmt = stmt.order_by(entity_states.c.entity_id.asc())
        with self._sessions.session() as session:
            rows = session.execute(stmt).mappings().all()
            return [_to_entity(row) for row in rows]

    def probe(self) -> None:
        """Run a trivial read against owned tables; raises when unavailable."""
        with self._sessions.session() as session:
            session.execute(select(owner_sequences.c.owner_id).limit(1)).all()


def _find_change_by_op_id(session: Session, *, op_id: str) -> ChangeRecord | None:
    row = (
        session.execute(select(change_ledger).where(change_ledger.c.op_id == op_id))
        .mappings()
        .one_or_none()
    )
    return None if row is None else _to_change(row)


def _known_op_outcome(
    session: Session, *, command: MutationCommand
) -> MutationOutcome | None:
    """Return the duplicate or foreign outcome for an already-recorded op id."""
    existing = _find_change_by_op_id(session, op_id=command.op_id)
    if existing is None:
        return None
    if existing.owner_id != command.owner_id:
        return MutationOutcome(status=MutationStatus.FOREIGN_OP_ID)
    return MutationOutcome(
        status=MutationStatus.DUPLICATE,
        change=existing,
        current_version=existing.version,
    )


def _entity_key(command: MutationCommand) -> tuple[Any, ...]:
    return (
        entity_states.c.owner_id == command.owner_id,
        entity_states.c.entity_type == command.entity_type,
        entity_states.c.entity_id == command.entity_id,
    )


def _write_entity(
    session: Session,
    *,
    command: MutationCommand,
    exists: bool,
    current_version: int,
    next_version: int,
    record: dict[str, Any] | None,
    now: datetime,
) -> None:
    """Insert or compare-and-swap update one entity row."""
    deleted = command.change_type is ChangeType.DELETE
    if not exists:
        session.execute(
            insert(entity_states).values(
                owner_id=command.owner_id,
                entity_type=command.entity_type,
                entity_id=command.entity_id,
                record=record,
                version=next_version,
                deleted=deleted,
                created_at=now,
                updated_at=now,
            )
        )
        return

    result = session.execute(
        update(entity_states)
        .where(*_entity_key(command), entity_states.c.version == current_version)
        .values(
            record=record,
            version=next_version,
            deleted=deleted,
            updated_at=now,
        )
    )
    if int(result.rowcount or 0) != 1:
        raise StaleEntityError(
            f"{command.entity_type}/{command.entity_id} changed concurrently"
        )


def _to_change(row: Mapping[str, Any]) -> ChangeRecord:
    """Map one ledger row to a strict domain change record."""
    return ChangeRecord(
        change_id=int(row["change_id"]),
        owner_id=str(row["owner_id"]),
        entity_type=str(row["entity_type"]),
        entity_id=str(row["entity_id"]),
        change_type=ChangeType(str(row["change_type"])),
        record=None if row["record"] is None else dict(row["record"]),
        version=int(row["version"]),
        client_ts=_optional_dt(row.get("client_ts")),
        device_id=str(row["device_id"]),
        op_id=str(row["op_id"]),
        created_at=_row_dt(row, "created_at"),
    )


def _to_entity(row: Mapping[str, Any]) -> EntityState:
    """Map one entity-store row to a strict domain entity state."""
    return EntityState(
        owner_id=str(row["owner_id"]),
        entity_type=str(row["entity_type"]),
        entity_id=str(row["entity_id"]),
        record=None if row["record"] is None else dict(row["record"]),
        version=int(row["version"]),
        deleted=bool(row["deleted"]),
        created_at=_row_dt(row, "created_at"),
        updated_at=_row_dt(row, "updated_at"),
    )


def _row_dt(row: Mapping[str, Any], column: str) -> datetime:
    """Read and normalize one timezone-aware datetime field from a SQL row."""
    value = _optional_dt(row.get(column))
    if value is None:
        raise ValueError(f"expected datetime column for {column}")
    return value


def _optional_dt(value: object) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValueError("expected datetime value")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
