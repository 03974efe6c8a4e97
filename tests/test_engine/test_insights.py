"""Tests for insight extraction."""

from __future__ import annotations

from datetime import datetime, timezone

from branch_thinking.engine.hashing import insight_hash
from branch_thinking.engine.insights import cited_insights, extract_insights
from branch_thinking.models.insight import Insight
from branch_thinking.models.thought import Thought


def _thought(
    key_points: list[str],
    *,
    confidence: float = 0.8,
    related: tuple[str, ...] = (),
    thought_id: str = "t1",
) -> Thought:
    return Thought(
        id=thought_id,
        branch_id="b1",
        content="content",
        type="analysis",
        confidence=confidence,
        key_points=tuple(key_points),
        related_insights=related,
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


class TestExtractInsights:
    def test_one_insight_per_key_point(self) -> None:
        new = extract_insights({}, _thought(["GC pause causes p99 spike", "heap is undersized"]))
        assert [i.content for i in new] == ["GC pause causes p99 spike", "heap is undersized"]
        assert all(i.source_thought_id == "t1" for i in new)
        assert all(i.confidence == 0.8 for i in new)

    def test_id_is_content_hash(self) -> None:
        [insight] = extract_insights({}, _thought(["GC pause causes p99 spike"]))
        assert insight.id == insight_hash("GC pause causes p99 spike")

    def test_no_key_points_no_insights(self) -> None:
        assert extract_insights({}, _thought([])) == []

    def test_blank_key_points_skipped(self) -> None:
        assert extract_insights({}, _thought(["", "   "])) == []

    def test_existing_insight_untouched(self) -> None:
        iid = insight_hash("GC pause")
        existing = {iid: Insight(id=iid, source_thought_id="t0", content="GC pause", confidence=0.3)}
        new = extract_insights(existing, _thought(["gc   PAUSE"], confidence=0.9))
        assert new == []
        assert existing[iid].confidence == 0.3

    def test_duplicates_within_thought_collapse(self) -> None:
        new = extract_insights({}, _thought(["GC pause", "gc pause", " GC  pause "]))
        assert len(new) == 1
        assert new[0].content == "GC pause"

    def test_does_not_mutate_existing(self) -> None:
        existing: dict[str, Insight] = {}
        extract_insights(existing, _thought(["a point"]))
        assert existing == {}

    def test_related_insights_never_create(self) -> None:
        new = extract_insights({}, _thought([], related=("deadbeef",)))
        assert new == []


class TestCitedInsights:
    def test_only_known_ids(self) -> None:
        iid = insight_hash("known")
        existing = {iid: Insight(id=iid, source_thought_id="t0", content="known", confidence=0.5)}
        thought = _thought([], related=(iid, "unknown"))
        assert cited_insights(existing, thought) == [iid]
