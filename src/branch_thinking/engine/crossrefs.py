"""Cross-reference index.

Each branch stores its own outgoing cross-references. The index keeps the
derived reverse view: how many references point at each branch, and from
where. Updated incrementally on every append; counts only grow because
thoughts are never removed. rebuild() recomputes it from scratch, used when
startup replay replaces a branch record.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from branch_thinking.models.branch import ThoughtBranch
    from branch_thinking.models.thought import CrossReference


class CrossReferenceIndex:
    """Incoming reference counts per branch."""

    def __init__(self) -> None:
        self._incoming: Counter[str] = Counter()
        self._sources: defaultdict[str, Counter[str]] = defaultdict(Counter)

    def record(self, source_branch_id: str, refs: Iterable[CrossReference]) -> None:
        """Add one incoming reference to each target for each declared ref."""
        for ref in refs:
            self._incoming[ref.to_branch] += 1
            self._sources[ref.to_branch][source_branch_id] += 1

    def incoming_count(self, branch_id: str) -> int:
        return self._incoming.get(branch_id, 0)

    def incoming_sources(self, branch_id: str) -> dict[str, int]:
        """Map of source branch id -> number of references into branch_id."""
        return dict(self._sources.get(branch_id, {}))

    def rebuild(self, branches: Iterable[ThoughtBranch]) -> None:
        """Recompute the index from every branch's outgoing references."""
        self._incoming.clear()
        self._sources.clear()
        for branch in branches:
            self.record(branch.id, branch.cross_refs)

    def __len__(self) -> int:
        return sum(self._incoming.values())
