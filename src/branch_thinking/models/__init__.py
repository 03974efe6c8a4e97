"""Domain models for branch-thinking."""

from branch_thinking.models.branch import BranchIndexEntry, BranchState, ThoughtBranch
from branch_thinking.models.config import (
    BranchThinkingConfig,
    LifecycleConfig,
    ScoringWeights,
)
from branch_thinking.models.insight import Insight
from branch_thinking.models.thought import (
    CrossReference,
    Thought,
    ThoughtInput,
    validate_thought_input,
)

__all__ = [
    "BranchIndexEntry",
    "BranchState",
    "BranchThinkingConfig",
    "CrossReference",
    "Insight",
    "LifecycleConfig",
    "ScoringWeights",
    "Thought",
    "ThoughtBranch",
    "ThoughtInput",
    "validate_thought_input",
]
