"""Abstract repository interface for the branch index.

No SQLAlchemy imports here -- pure abstract contract.
The concrete implementation is in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from branch_thinking.models.branch import BranchIndexEntry


class BranchIndexRepository(ABC):
    """Abstract interface for branch index storage."""

    @abstractmethod
    def replace_all(self, entries: Iterable[BranchIndexEntry]) -> None:
        """Make the index contain exactly ``entries``."""
        ...

    @abstractmethod
    def list_all(self) -> Sequence[BranchIndexEntry]:
        """All entries, highest priority first."""
        ...
