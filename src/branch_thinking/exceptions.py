"""Branch-thinking exception hierarchy.

All branch-thinking exceptions inherit from BranchThinkingError.
"""


class BranchThinkingError(Exception):
    """Base exception for all branch-thinking errors."""


class ThoughtValidationError(BranchThinkingError):
    """Raised when a thought payload or branch record fails validation.

    Named ThoughtValidationError (not ValidationError) to avoid
    collision with pydantic.ValidationError.
    """


class UnknownBranchError(BranchThinkingError):
    """Raised when a branch id does not resolve to a registered branch."""

    def __init__(self, branch_id: str, role: str = "branch") -> None:
        self.branch_id = branch_id
        self.role = role
        if role == "branch":
            super().__init__(f"Branch not found: {branch_id}")
        else:
            super().__init__(f"Branch not found: {branch_id} (referenced as {role})")


class ClosedBranchError(BranchThinkingError):
    """Raised when appending to a DEAD_END or COMPLETED branch.

    A closed branch accepts new thoughts only after it has been explicitly
    refocused with set_active_branch().
    """

    def __init__(self, branch_id: str, state: str) -> None:
        self.branch_id = branch_id
        self.state = state
        super().__init__(
            f"Branch '{branch_id}' is {state}. "
            f"Focus it first to reopen it for new thoughts."
        )


class ConflictError(BranchThinkingError):
    """Raised when two records for the same branch cannot be reconciled."""

    def __init__(self, branch_id: str, reason: str) -> None:
        self.branch_id = branch_id
        self.reason = reason
        super().__init__(f"Conflicting records for branch '{branch_id}': {reason}")


class PersistenceError(BranchThinkingError):
    """Raised when saving or loading persisted branches fails."""
