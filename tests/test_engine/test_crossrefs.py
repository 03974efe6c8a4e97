"""Tests for the cross-reference index."""

from __future__ import annotations

from datetime import datetime, timezone

from branch_thinking.engine.crossrefs import CrossReferenceIndex
from branch_thinking.models.branch import ThoughtBranch
from branch_thinking.models.thought import CrossReference


def _ref(to: str, type_: str = "supports") -> CrossReference:
    return CrossReference(to_branch=to, type=type_, reason="r", strength=0.5)


class TestCrossReferenceIndex:
    def test_empty(self) -> None:
        index = CrossReferenceIndex()
        assert index.incoming_count("b1") == 0
        assert index.incoming_sources("b1") == {}
        assert len(index) == 0

    def test_record_counts_each_declaration(self) -> None:
        index = CrossReferenceIndex()
        index.record("b2", [_ref("b1"), _ref("b1")])
        index.record("b3", [_ref("b1", "contradicts")])
        assert index.incoming_count("b1") == 3
        assert index.incoming_sources("b1") == {"b2": 2, "b3": 1}
        assert len(index) == 3

    def test_sources_copy(self) -> None:
        index = CrossReferenceIndex()
        index.record("b2", [_ref("b1")])
        index.incoming_sources("b1")["b9"] = 5
        assert index.incoming_sources("b1") == {"b2": 1}

    def test_rebuild_replaces_counts(self) -> None:
        index = CrossReferenceIndex()
        index.record("b2", [_ref("b1")] * 4)
        branches = [
            ThoughtBranch(
                id="b2",
                cross_refs=[_ref("b1")],
                created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            ),
            ThoughtBranch(
                id="b3",
                cross_refs=[_ref("b2"), _ref("b1")],
                created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            ),
        ]
        index.rebuild(branches)
        assert index.incoming_count("b1") == 2
        assert index.incoming_count("b2") == 1
