"""BranchManager -- the in-memory owner of all branches.

Composes the engine pieces (insight extraction, cross-reference index,
scoring, state machine) into the public operations used by the transport
and persistence layers.

Not thread-safe. One logical thread of control owns a manager; the
transport serializes requests and the persistence layer snapshots
synchronously between them.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from branch_thinking.engine import lifecycle
from branch_thinking.engine.crossrefs import CrossReferenceIndex
from branch_thinking.engine.insights import cited_insights, extract_insights
from branch_thinking.engine.scoring import compute_priority
from branch_thinking.exceptions import (
    ClosedBranchError,
    ConflictError,
    ThoughtValidationError,
    UnknownBranchError,
)
from branch_thinking.formatting import format_branch_history, format_branch_status
from branch_thinking.models.branch import BranchState, ThoughtBranch
from branch_thinking.models.config import LifecycleConfig, ScoringWeights
from branch_thinking.models.thought import Thought, validate_thought_input

if TYPE_CHECKING:
    from branch_thinking.models.config import BranchThinkingConfig
    from branch_thinking.models.thought import ThoughtInput

logger = logging.getLogger(__name__)

# Characters forbidden in branch ids (ids double as file names on disk)
_FORBIDDEN_CHARS = re.compile(r"[\s~^:?*\[\\/]")

_MAX_BRANCH_ID_LENGTH = 128

# Shape of ids produced by the generator: b1, b2, ...
_GENERATED_ID = re.compile(r"b(\d+)")


def validate_branch_id(branch_id: str) -> None:
    """Validate a caller-supplied branch id.

    Raises ThoughtValidationError on violation.
    """
    if not branch_id:
        raise ThoughtValidationError("Invalid branch id: branch id cannot be empty")

    if len(branch_id) > _MAX_BRANCH_ID_LENGTH:
        raise ThoughtValidationError(
            f"Invalid branch id '{branch_id[:20]}...': longer than "
            f"{_MAX_BRANCH_ID_LENGTH} characters"
        )

    if ".." in branch_id:
        raise ThoughtValidationError(
            f"Invalid branch id '{branch_id}': cannot contain '..'"
        )

    if branch_id.startswith("."):
        raise ThoughtValidationError(
            f"Invalid branch id '{branch_id}': cannot start with '.'"
        )

    if _FORBIDDEN_CHARS.search(branch_id):
        raise ThoughtValidationError(
            f"Invalid branch id '{branch_id}': contains forbidden characters "
            f"(whitespace, ~, ^, :, ?, *, [, \\, /)"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BranchResolution:
    """Result of the lookup phase of add_thought().

    ``branch`` is either the registered branch or a new, not yet
    registered one (``created=True``).
    """

    branch: ThoughtBranch
    created: bool


class BranchManager:
    """Owns the branch map and the process-wide active branch pointer.

    Example::

        manager = BranchManager()
        thought = manager.add_thought({"content": "Investigate latency", "type": "hypothesis"})
        print(manager.format_branch_status(manager.get_branch(thought.branch_id)))
    """

    def __init__(
        self,
        *,
        scoring: ScoringWeights | None = None,
        lifecycle_config: LifecycleConfig | None = None,
        status_preview_chars: int = 50,
        clock: Callable[[], datetime] | None = None,
        thought_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._branches: dict[str, ThoughtBranch] = {}
        self._active_branch_id: str | None = None
        # Closed branch explicitly focused since it closed; its next write reopens it.
        self._reopenable_branch_id: str | None = None
        self._xref_index = CrossReferenceIndex()
        self._scoring = scoring or ScoringWeights()
        self._lifecycle = lifecycle_config or LifecycleConfig()
        self._status_preview_chars = status_preview_chars
        self._clock = clock or _utcnow
        self._new_thought_id = thought_id_factory or (lambda: uuid.uuid4().hex)
        self._branch_seq = 0

    @classmethod
    def from_config(cls, config: BranchThinkingConfig, **kwargs: Any) -> BranchManager:
        """Create a manager using the scoring and lifecycle settings of *config*."""
        return cls(
            scoring=config.scoring,
            lifecycle_config=config.lifecycle,
            status_preview_chars=config.status_preview_chars,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_thought(self, data: ThoughtInput | dict[str, Any]) -> Thought:
        """Append a thought, creating its branch if needed.

        Every check runs before anything is mutated: either the thought,
        its cross-references and its insights are all recorded, or none are.

        Args:
            data: ThoughtInput or a mapping (snake_case or camelCase keys).

        Returns:
            The recorded Thought.

        Raises:
            ThoughtValidationError: Missing/empty content or type, malformed
                fields, or an invalid branch id.
            UnknownBranchError: Unknown parent branch for a new branch, or
                unknown cross-reference target.
            ClosedBranchError: Target branch is DEAD_END/COMPLETED and has not
                been refocused.
        """
        payload = validate_thought_input(data)
        if payload.branch_id is not None:
            validate_branch_id(payload.branch_id)

        resolution = self.resolve_branch(payload.branch_id, payload.parent_branch_id)
        branch = resolution.branch

        if not resolution.created and branch.state.is_terminal:
            if not (
                self._lifecycle.reopen_on_write
                or self._reopenable_branch_id == branch.id
            ):
                raise ClosedBranchError(branch.id, branch.state.value)

        for ref in payload.cross_refs:
            if ref.to_branch not in self._branches:
                raise UnknownBranchError(ref.to_branch, role="cross-reference target")

        thought = Thought(
            id=self._new_thought_id(),
            branch_id=branch.id,
            parent_branch_id=branch.parent_branch_id if resolution.created else None,
            content=payload.content,
            type=payload.type,
            confidence=payload.confidence,
            key_points=tuple(payload.key_points),
            related_insights=tuple(dict.fromkeys(payload.related_insights)),
            cross_refs=tuple(payload.cross_refs),
            timestamp=self._clock(),
        )

        # -- commit phase: nothing below can fail validation --
        if resolution.created:
            self._register(branch)
            logger.info(
                "Created branch %s%s",
                branch.id,
                f" (parent {branch.parent_branch_id})" if branch.parent_branch_id else "",
            )
        elif branch.state.is_terminal:
            lifecycle.reopen(branch)
        else:
            lifecycle.resume(branch)
        if self._reopenable_branch_id == branch.id:
            self._reopenable_branch_id = None

        known = cited_insights(branch.insights, thought)
        if len(known) != len(thought.related_insights):
            logger.debug(
                "Thought %s cites %d unknown insight(s) on branch %s",
                thought.id[:8],
                len(thought.related_insights) - len(known),
                branch.id,
            )

        branch.thoughts.append(thought)
        branch.cross_refs.extend(thought.cross_refs)
        for insight in extract_insights(branch.insights, thought):
            branch.insights[insight.id] = insight
        self._xref_index.record(branch.id, thought.cross_refs)

        branch.priority = compute_priority(branch, self._scoring, now=thought.timestamp)
        new_state = lifecycle.evaluate_transition(branch, self._lifecycle, appended=thought)
        if new_state is not None:
            lifecycle.transition(branch, new_state)

        self._focus(branch.id)
        logger.debug(
            "Appended thought %s to %s (priority %.3f, %s)",
            thought.id[:8],
            branch.id,
            branch.priority,
            branch.state.value,
        )
        return thought

    def resolve_branch(
        self,
        branch_id: str | None,
        parent_branch_id: str | None = None,
    ) -> BranchResolution:
        """Look up a branch, or build (without registering) a new one.

        Pure: never mutates the manager.

        Raises:
            UnknownBranchError: A new branch names a parent that does not exist.
        """
        if branch_id is not None:
            existing = self._branches.get(branch_id)
            if existing is not None:
                return BranchResolution(branch=existing, created=False)

        if parent_branch_id is not None and parent_branch_id not in self._branches:
            raise UnknownBranchError(parent_branch_id, role="parent branch")

        branch = ThoughtBranch(
            id=branch_id if branch_id is not None else self._next_branch_id(),
            parent_branch_id=parent_branch_id,
            state=BranchState.ACTIVE,
            created_at=self._clock(),
        )
        return BranchResolution(branch=branch, created=True)

    def set_active_branch(self, branch_id: str) -> None:
        """Focus a branch.

        The previously active branch (if ACTIVE) is suspended. A SUSPENDED
        target becomes ACTIVE; a closed target is focused for inspection
        without a state change, and becomes writable again.

        Raises:
            UnknownBranchError: If branch_id is not registered.
        """
        branch = self._branches.get(branch_id)
        if branch is None:
            raise UnknownBranchError(branch_id)

        self._focus(branch_id)
        if branch.state.is_terminal:
            self._reopenable_branch_id = branch_id
        else:
            lifecycle.resume(branch)

    def reconstruct_branch(self, record: ThoughtBranch | dict[str, Any]) -> None:
        """Register a previously persisted branch verbatim.

        Used by the persistence layer during startup replay. Insight
        extraction, cross-reference validation and scoring are not re-run.
        When the id is already registered, the record with more thoughts
        wins; ties keep the existing one.

        Raises:
            ThoughtValidationError: If a mapping record is malformed.
            ConflictError: If both records disagree on the parent branch.
        """
        if isinstance(record, ThoughtBranch):
            branch = record.model_copy(deep=True)
        else:
            try:
                branch = ThoughtBranch.model_validate(record)
            except ValidationError as e:
                raise ThoughtValidationError(f"Branch record validation failed: {e}") from e

        existing = self._branches.get(branch.id)
        if existing is not None:
            if existing.parent_branch_id != branch.parent_branch_id:
                raise ConflictError(
                    branch.id,
                    f"parent {existing.parent_branch_id!r} != {branch.parent_branch_id!r}",
                )
            if len(branch.thoughts) <= len(existing.thoughts):
                logger.info(
                    "Keeping registered branch %s (%d thoughts) over replayed record (%d)",
                    branch.id,
                    len(existing.thoughts),
                    len(branch.thoughts),
                )
                return
            logger.info(
                "Replacing branch %s (%d thoughts) with replayed record (%d)",
                branch.id,
                len(existing.thoughts),
                len(branch.thoughts),
            )
            self._branches[branch.id] = branch
            self._xref_index.rebuild(self._branches.values())
        else:
            self._register(branch)
            self._xref_index.record(branch.id, branch.cross_refs)

        if branch.state == BranchState.ACTIVE:
            if self._active_branch_id in (None, branch.id):
                self._active_branch_id = branch.id
            else:
                logger.warning(
                    "Branch %s replayed as active while %s is active; suspending it",
                    branch.id,
                    self._active_branch_id,
                )
                branch.state = BranchState.SUSPENDED
        elif self._active_branch_id == branch.id:
            # Replaced the active branch with a record that is not ACTIVE
            logger.info("Replayed branch %s is %s; clearing focus", branch.id, branch.state.value)
            self._active_branch_id = None
            self._reopenable_branch_id = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_branch(self, branch_id: str) -> ThoughtBranch | None:
        return self._branches.get(branch_id)

    def get_all_branches(self) -> list[ThoughtBranch]:
        """All branches in creation order."""
        return list(self._branches.values())

    def get_active_branch(self) -> ThoughtBranch | None:
        if self._active_branch_id is None:
            return None
        return self._branches.get(self._active_branch_id)

    def get_incoming_reference_count(self, branch_id: str) -> int:
        return self._xref_index.incoming_count(branch_id)

    def get_incoming_references(self, branch_id: str) -> dict[str, int]:
        """Map of source branch id -> references pointing at branch_id."""
        return self._xref_index.incoming_sources(branch_id)

    def get_branch_history(self, branch_id: str) -> str:
        """Render every thought of a branch in order.

        Raises:
            UnknownBranchError: If branch_id is not registered.
        """
        branch = self._branches.get(branch_id)
        if branch is None:
            raise UnknownBranchError(branch_id)
        return format_branch_history(branch)

    def format_branch_status(self, branch: ThoughtBranch) -> str:
        """Render a one-branch status summary. No mutation."""
        return format_branch_status(
            branch,
            incoming_refs=self._xref_index.incoming_count(branch.id),
            preview_chars=self._status_preview_chars,
        )

    def __len__(self) -> int:
        return len(self._branches)

    def __contains__(self, branch_id: object) -> bool:
        return branch_id in self._branches

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _register(self, branch: ThoughtBranch) -> None:
        self._branches[branch.id] = branch
        m = _GENERATED_ID.fullmatch(branch.id)
        if m is not None:
            self._branch_seq = max(self._branch_seq, int(m.group(1)))

    def _next_branch_id(self) -> str:
        n = self._branch_seq + 1
        while f"b{n}" in self._branches:
            n += 1
        return f"b{n}"

    def _focus(self, branch_id: str) -> None:
        previous_id = self._active_branch_id
        if previous_id is not None and previous_id != branch_id:
            previous = self._branches.get(previous_id)
            if previous is not None:
                lifecycle.suspend(previous)
        if self._reopenable_branch_id != branch_id:
            self._reopenable_branch_id = None
        self._active_branch_id = branch_id
