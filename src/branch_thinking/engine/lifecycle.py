"""Branch state machine.

States: ACTIVE, SUSPENDED, DEAD_END, COMPLETED.

    ACTIVE    -> SUSPENDED   focus moves to another branch
    SUSPENDED -> ACTIVE      a thought is appended, or the branch is focused
    ACTIVE|SUSPENDED -> COMPLETED
                             a conclusion-typed thought is appended, or
                             priority and insight count clear the high-water marks
    ACTIVE|SUSPENDED -> DEAD_END
                             enough thoughts, no insight growth in the recent
                             window, and priority below the low-water mark

DEAD_END and COMPLETED are terminal. Only an explicit refocus followed by a
write (or LifecycleConfig.reopen_on_write) moves a branch out of them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from branch_thinking.models.branch import BranchState
from branch_thinking.models.config import LifecycleConfig

if TYPE_CHECKING:
    from branch_thinking.models.branch import ThoughtBranch
    from branch_thinking.models.thought import Thought

logger = logging.getLogger(__name__)


def is_conclusion(thought: Thought, config: LifecycleConfig) -> bool:
    return thought.type.strip().casefold() in {t.casefold() for t in config.conclusion_types}


def is_stagnant(branch: ThoughtBranch, config: LifecycleConfig) -> bool:
    """True when none of the last ``stagnation_window`` thoughts sourced an insight."""
    if len(branch.thoughts) < config.dead_end_min_thoughts:
        return False
    sources = {insight.source_thought_id for insight in branch.insights.values()}
    window = branch.thoughts[-config.stagnation_window:]
    return not any(t.id in sources for t in window)


def evaluate_transition(
    branch: ThoughtBranch,
    config: LifecycleConfig | None = None,
    *,
    appended: Thought | None = None,
) -> BranchState | None:
    """Decide whether a branch should close after an append.

    Assumes ``branch.priority`` is already up to date. Terminal branches
    never transition here.

    Args:
        branch: The branch just mutated.
        config: Thresholds. Defaults to LifecycleConfig().
        appended: The thought just appended, if any.

    Returns:
        The new terminal state, or None to stay put.
    """
    if config is None:
        config = LifecycleConfig()
    if branch.state.is_terminal:
        return None

    if appended is not None and is_conclusion(appended, config):
        return BranchState.COMPLETED
    if (
        branch.priority >= config.completion_priority
        and len(branch.insights) >= config.completion_min_insights
    ):
        return BranchState.COMPLETED
    if branch.priority < config.dead_end_priority and is_stagnant(branch, config):
        return BranchState.DEAD_END
    return None


def transition(branch: ThoughtBranch, new_state: BranchState) -> bool:
    """Move a branch to ``new_state``. Returns False if it was already there."""
    old_state = branch.state
    if old_state == new_state:
        return False
    branch.state = new_state
    logger.info("Branch %s: %s -> %s", branch.id, old_state.value, new_state.value)
    return True


def suspend(branch: ThoughtBranch) -> bool:
    """ACTIVE -> SUSPENDED. Other states are left unchanged."""
    if branch.state != BranchState.ACTIVE:
        return False
    return transition(branch, BranchState.SUSPENDED)


def resume(branch: ThoughtBranch) -> bool:
    """SUSPENDED -> ACTIVE. Other states are left unchanged."""
    if branch.state != BranchState.SUSPENDED:
        return False
    return transition(branch, BranchState.ACTIVE)


def reopen(branch: ThoughtBranch) -> bool:
    """Terminal -> ACTIVE, for an explicitly refocused closed branch."""
    if not branch.state.is_terminal:
        return False
    return transition(branch, BranchState.ACTIVE)
