"""Thought domain models for branch-thinking.

Thought is the immutable record stored in a branch's log.
ThoughtInput is the validated add_thought() payload.
CrossReference is a directed, typed link from one branch to another.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from branch_thinking.exceptions import ThoughtValidationError

# Confidence used when a thought does not declare one.
DEFAULT_CONFIDENCE = 0.5

# Strength used when a cross-reference does not declare one.
DEFAULT_STRENGTH = 0.5


def clamp01(value: float) -> float:
    """Clamp a real number into [0, 1]. NaN is rejected."""
    if math.isnan(value):
        raise ValueError("must be a number, not NaN")
    return min(1.0, max(0.0, value))


class CrossReference(BaseModel):
    """A directed, typed assertion that one branch relates to another.

    Stored on the originating branch only. Identical declarations are
    kept as separate entries.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    to_branch: str
    type: str
    reason: str = ""
    strength: float = DEFAULT_STRENGTH

    @field_validator("to_branch", "type")
    @classmethod
    def _require_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("strength", mode="before")
    @classmethod
    def _default_strength(cls, v: object) -> object:
        return DEFAULT_STRENGTH if v is None else v

    @field_validator("strength")
    @classmethod
    def _clamp_strength(cls, v: float) -> float:
        return clamp01(v)

    def __str__(self) -> str:
        reason = f" {self.reason}" if self.reason else ""
        return f"-> {self.to_branch} [{self.type}]{reason} (strength {self.strength:.2f})"


class Thought(BaseModel):
    """One atomic, immutable entry in a branch's log.

    Returned by BranchManager.add_thought(). Later mutation of the owning
    branch never changes an existing Thought.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    branch_id: str
    parent_branch_id: Optional[str] = None  # Only on the thought that opened a child branch
    content: str
    type: str
    confidence: float
    key_points: tuple[str, ...] = ()
    related_insights: tuple[str, ...] = ()
    cross_refs: tuple[CrossReference, ...] = ()
    timestamp: datetime

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return clamp01(v)

    def __str__(self) -> str:
        content = self.content
        if len(content) > 60:
            content = content[:57] + "..."
        return f"{self.id[:8]} [{self.type}] {content}"

    def __repr__(self) -> str:
        return (
            f"Thought({self.id[:8]} branch={self.branch_id!r} type={self.type!r} "
            f"confidence={self.confidence:.2f})"
        )


class ThoughtInput(BaseModel):
    """Validated add_thought() payload.

    Accepts both snake_case field names and the camelCase names used on
    the wire (``branchId``, ``keyPoints``, ``crossRefs`` ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: str
    type: str
    branch_id: Optional[str] = None
    parent_branch_id: Optional[str] = None
    confidence: float = DEFAULT_CONFIDENCE
    key_points: list[str] = []
    related_insights: list[str] = []
    cross_refs: list[CrossReference] = []

    @field_validator("content", "type")
    @classmethod
    def _require_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def _default_confidence(cls, v: object) -> object:
        return DEFAULT_CONFIDENCE if v is None else v

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return clamp01(v)

    @field_validator("key_points", "related_insights", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        return [] if v is None else v

    @field_validator("cross_refs", mode="before")
    @classmethod
    def _none_refs_to_empty(cls, v: object) -> object:
        return [] if v is None else v


def validate_thought_input(data: ThoughtInput | dict[str, Any]) -> ThoughtInput:
    """Validate a raw add_thought() payload.

    Args:
        data: A ThoughtInput (returned unchanged) or a mapping using
            snake_case or camelCase keys.

    Returns:
        Validated ThoughtInput.

    Raises:
        ThoughtValidationError: If required fields are missing or empty,
            or any field is malformed.
    """
    if isinstance(data, ThoughtInput):
        return data
    if not isinstance(data, dict):
        raise ThoughtValidationError(
            f"Thought payload must be an object, got {type(data).__name__}"
        )
    try:
        return ThoughtInput.model_validate(data)
    except ValidationError as e:
        raise ThoughtValidationError(f"Thought validation failed: {e}") from e
