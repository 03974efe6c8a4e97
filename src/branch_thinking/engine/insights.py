"""Insight extraction.

Turns a thought's declared key points into deduplicated Insight records.
Rule based: every non-blank key point is an insight candidate, keyed by
the hash of its normalized text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from branch_thinking.engine.hashing import insight_hash
from branch_thinking.models.insight import Insight

if TYPE_CHECKING:
    from branch_thinking.models.thought import Thought


def extract_insights(existing: Mapping[str, Insight], thought: Thought) -> list[Insight]:
    """Return the insights a thought adds to a branch.

    Key points whose hash is already in ``existing`` are skipped (the first
    recorded confidence wins). A key point repeated within the same thought
    yields one insight. ``thought.related_insights`` never creates insights.

    Args:
        existing: The branch's current insight map (not modified).
        thought: The incoming thought.

    Returns:
        New insights in key point order.
    """
    new: list[Insight] = []
    seen: set[str] = set(existing)
    for point in thought.key_points:
        if not point.strip():
            continue
        insight_id = insight_hash(point)
        if insight_id in seen:
            continue
        seen.add(insight_id)
        new.append(
            Insight(
                id=insight_id,
                source_thought_id=thought.id,
                content=point.strip(),
                confidence=thought.confidence,
            )
        )
    return new


def cited_insights(existing: Mapping[str, Insight], thought: Thought) -> list[str]:
    """Return the related_insights entries that name a known insight."""
    return [iid for iid in thought.related_insights if iid in existing]
