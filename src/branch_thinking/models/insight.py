"""Insight domain model for branch-thinking."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Insight(BaseModel):
    """A deduplicated highlight extracted from a thought's key points.

    ``id`` is the content hash of the normalized key point text, so the
    same text recorded twice on one branch maps to one Insight.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source_thought_id: str
    content: str
    confidence: float

    def __str__(self) -> str:
        return f"{self.id[:8]} {self.content}"
