"""Per-owner change-id allocation for the change ledger.

The counter row is a per-owner lock: two commits for one owner serialize on
it even when they touch different entities. Repository writes allocate last,
after the entity row is written and every rejection path has returned, so
the counter lock is held only for the ledger insert and commit.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from .schema import owner_sequences


class SequenceAllocator(Protocol):
    """Hand out strictly increasing ``change_id`` values per owner."""

    def allocate(self, session: Session, *, owner_id: str) -> int:
        """Return the next change id inside the caller's transaction."""


class CounterTableSequenceAllocator:
    """Allocate change ids from one counter row per owner.

    The UPDATE takes a row lock held until the caller commits, so commits for
    one owner land in ``change_id`` order and a pull never observes id N+1
    before N. Concurrent first allocations for a new owner race on the
    primary key; the loser raises ``IntegrityError`` and is retried by the
    caller.
    """

    def allocate(self, session: Session, *, owner_id: str) -> int:
        bumped = session.execute(
            update(owner_sequences)
            .where(owner_sequences.c.owner_id == owner_id)
            .values(last_change_id=owner_sequences.c.last_change_id + 1)
        )
        if int(bumped.rowcount or 0) == 0:
            session.execute(
                insert(owner_sequences).values(owner_id=owner_id, last_change_id=1)
            )
            return 1
        return int(
            session.execute(
                select(owner_sequences.c.last_change_id).where(
                    owner_sequences.c.owner_id == owner_id
                )
            ).scalar_one()
        )
