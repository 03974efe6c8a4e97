"""Branch domain models for branch-thinking.

ThoughtBranch is the mutable, append-only log owned by BranchManager.
BranchState is the lifecycle enum evaluated by engine.lifecycle.
BranchIndexEntry is the lightweight summary kept by the persistence index.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from branch_thinking.models.insight import Insight
from branch_thinking.models.thought import CrossReference, Thought


class BranchState(str, enum.Enum):
    """Lifecycle states of a branch.

    DEAD_END and COMPLETED are terminal: nothing moves a branch out of them
    automatically.
    """

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEAD_END = "dead_end"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (BranchState.DEAD_END, BranchState.COMPLETED)

    def __str__(self) -> str:
        return self.value


class ThoughtBranch(BaseModel):
    """One line of reasoning: an ordered log of thoughts plus derived state.

    ``thoughts`` is append-only. ``insights`` maps insight id to Insight.
    ``priority`` is recomputed by the manager after every append.
    """

    id: str
    parent_branch_id: Optional[str] = None
    thoughts: list[Thought] = []
    insights: dict[str, Insight] = {}
    cross_refs: list[CrossReference] = []
    state: BranchState = BranchState.ACTIVE
    priority: float = 0.0
    created_at: datetime

    @property
    def latest_thought(self) -> Thought | None:
        return self.thoughts[-1] if self.thoughts else None

    @property
    def last_updated(self) -> datetime:
        latest = self.latest_thought
        return latest.timestamp if latest is not None else self.created_at

    def to_index_entry(self) -> BranchIndexEntry:
        """Summarize this branch for the persistence index."""
        return BranchIndexEntry(
            id=self.id,
            state=self.state,
            priority=self.priority,
            thought_count=len(self.thoughts),
            last_updated=self.last_updated,
        )

    def __str__(self) -> str:
        return (
            f"{self.id} [{self.state.value}] priority={self.priority:.2f} "
            f"thoughts={len(self.thoughts)}"
        )

    def pprint(
        self, *, incoming_refs: int = 0, preview_chars: int = 50, file: Any = None
    ) -> None:
        """Pretty-print this branch's status using rich formatting."""
        from branch_thinking.formatting import pprint_branch

        pprint_branch(
            self, incoming_refs=incoming_refs, preview_chars=preview_chars, file=file
        )


class BranchIndexEntry(BaseModel):
    """Summary row for fast branch listing without loading branch files."""

    id: str
    state: BranchState
    priority: float
    thought_count: int
    last_updated: datetime
