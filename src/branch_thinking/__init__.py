"""branch-thinking: branching chains of thought with insights and cross-references.

A reasoning session is a forest of branches, each an append-only log of
thoughts. Branches carry derived insights, cross-references to other
branches, a lifecycle state, and a priority score.
"""

from branch_thinking._version import __version__

# Core entry point
from branch_thinking.manager import BranchManager, BranchResolution, validate_branch_id

# Domain models
from branch_thinking.models.branch import BranchIndexEntry, BranchState, ThoughtBranch
from branch_thinking.models.insight import Insight
from branch_thinking.models.thought import (
    CrossReference,
    Thought,
    ThoughtInput,
    validate_thought_input,
)

# Configuration
from branch_thinking.models.config import (
    BranchThinkingConfig,
    LifecycleConfig,
    ScoringWeights,
)

# Engine
from branch_thinking.engine.crossrefs import CrossReferenceIndex
from branch_thinking.engine.insights import extract_insights
from branch_thinking.engine.scoring import compute_priority

# Persistence
from branch_thinking.persistence import PersistenceManager

# Exceptions
from branch_thinking.exceptions import (
    BranchThinkingError,
    ClosedBranchError,
    ConflictError,
    PersistenceError,
    ThoughtValidationError,
    UnknownBranchError,
)

__all__ = [
    "__version__",
    "BranchManager",
    "BranchResolution",
    "validate_branch_id",
    "BranchIndexEntry",
    "BranchState",
    "ThoughtBranch",
    "Insight",
    "CrossReference",
    "Thought",
    "ThoughtInput",
    "validate_thought_input",
    "BranchThinkingConfig",
    "LifecycleConfig",
    "ScoringWeights",
    "CrossReferenceIndex",
    "extract_insights",
    "compute_priority",
    "PersistenceManager",
    "BranchThinkingError",
    "ClosedBranchError",
    "ConflictError",
    "PersistenceError",
    "ThoughtValidationError",
    "UnknownBranchError",
]
