"""Configuration models for branch-thinking.

BranchThinkingConfig holds process-level settings (storage, autosave).
ScoringWeights holds the priority formula weights.
LifecycleConfig holds the state machine thresholds.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_STORAGE_DIR = os.path.join(os.path.expanduser("~"), ".branch-thinking")


class ScoringWeights(BaseModel):
    """Weights for the branch priority formula.

    Weights need not sum to 1; the score is clamped to [0, 1].
    """

    confidence: float = Field(default=0.4, ge=0.0)
    insight_density: float = Field(default=0.3, ge=0.0)
    cross_refs: float = Field(default=0.1, ge=0.0)
    recency: float = Field(default=0.2, ge=0.0)
    recency_half_life_seconds: float = Field(default=3600.0, gt=0.0)
    max_counted_cross_refs: int = Field(default=5, gt=0)


class LifecycleConfig(BaseModel):
    """Thresholds for automatic COMPLETED / DEAD_END transitions."""

    completion_priority: float = 0.85
    completion_min_insights: int = 5
    dead_end_priority: float = 0.3
    dead_end_min_thoughts: int = 5
    stagnation_window: int = Field(default=3, gt=0)
    conclusion_types: frozenset[str] = frozenset({"conclusion"})
    reopen_on_write: bool = False  # True = appending to a closed branch reopens it


class BranchThinkingConfig(BaseModel):
    """Process-level configuration."""

    storage_dir: str = DEFAULT_STORAGE_DIR
    autosave_interval: float = Field(default=60.0, ge=0.0)  # seconds; 0 = disabled
    status_preview_chars: int = Field(default=50, gt=0)
    scoring: ScoringWeights = ScoringWeights()
    lifecycle: LifecycleConfig = LifecycleConfig()
