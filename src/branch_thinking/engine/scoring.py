"""Branch priority scoring.

priority = clamp01(
    w_confidence * avg_confidence
    + w_density * min(insights / thoughts, 1)
    + w_refs * min(outgoing_refs, N) / N
    + w_recency * exp(-age / half_life)
)

Pure function of the branch and a reference time. The manager passes the
timestamp of the thought it just appended, so replaying the same thought
sequence always produces the same score.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING

from branch_thinking.models.config import ScoringWeights

if TYPE_CHECKING:
    from branch_thinking.models.branch import ThoughtBranch


def recency_factor(age_seconds: float, half_life_seconds: float) -> float:
    """exp(-age / half_life), with negative ages treated as zero."""
    return math.exp(-max(0.0, age_seconds) / half_life_seconds)


def compute_priority(
    branch: ThoughtBranch,
    weights: ScoringWeights | None = None,
    *,
    now: datetime | None = None,
) -> float:
    """Compute a branch's priority in [0, 1].

    Args:
        branch: The branch to score.
        weights: Formula weights. Defaults to ScoringWeights().
        now: Reference time for the recency term. Defaults to the
            timestamp of the branch's latest thought (recency 1.0).

    Returns:
        The clamped score. A branch with no thoughts scores 0.0.
    """
    if weights is None:
        weights = ScoringWeights()

    thoughts = branch.thoughts
    if not thoughts:
        return 0.0

    avg_confidence = sum(t.confidence for t in thoughts) / len(thoughts)
    density = min(len(branch.insights) / len(thoughts), 1.0)
    cap = weights.max_counted_cross_refs
    refs = min(len(branch.cross_refs), cap) / cap

    latest = thoughts[-1].timestamp
    age = (now - latest).total_seconds() if now is not None else 0.0
    recency = recency_factor(age, weights.recency_half_life_seconds)

    score = (
        weights.confidence * avg_confidence
        + weights.insight_density * density
        + weights.cross_refs * refs
        + weights.recency * recency
    )
    return min(1.0, max(0.0, score))
