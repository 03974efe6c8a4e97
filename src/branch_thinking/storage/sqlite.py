"""SQLite implementation of the branch index repository.

Uses SQLAlchemy 2.0-style queries (select() + session.execute()).
The repository takes a Session in its constructor and commits its own writes.
"""

from __future__ import annotations

from datetime import timezone
from typing import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from branch_thinking.models.branch import BranchIndexEntry
from branch_thinking.storage.repositories import BranchIndexRepository
from branch_thinking.storage.schema import BranchIndexRow


def _to_entry(row: BranchIndexRow) -> BranchIndexEntry:
    last_updated = row.last_updated
    # SQLite drops tzinfo on the way back out
    if last_updated.tzinfo is None:
        last_updated = last_updated.replace(tzinfo=timezone.utc)
    return BranchIndexEntry(
        id=row.branch_id,
        state=row.state,
        priority=row.priority,
        thought_count=row.thought_count,
        last_updated=last_updated,
    )


class SqliteBranchIndexRepository(BranchIndexRepository):
    """SQLite implementation of the branch index repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def replace_all(self, entries: Iterable[BranchIndexEntry]) -> None:
        """Replace the index in one transaction."""
        try:
            self._session.execute(delete(BranchIndexRow))
            for entry in entries:
                self._write(entry)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def list_all(self) -> Sequence[BranchIndexEntry]:
        stmt = select(BranchIndexRow).order_by(
            BranchIndexRow.priority.desc(), BranchIndexRow.branch_id
        )
        return [_to_entry(row) for row in self._session.execute(stmt).scalars().all()]

    def _write(self, entry: BranchIndexEntry) -> None:
        self._session.add(
            BranchIndexRow(
                branch_id=entry.id,
                state=entry.state,
                priority=entry.priority,
                thought_count=entry.thought_count,
                last_updated=entry.last_updated,
            )
        )
        self._session.flush()
