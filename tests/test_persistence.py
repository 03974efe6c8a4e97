"""Tests for saving and replaying branches on disk.

Covers the branch file layout, the SQLite index, startup replay, corrupt
files and the async autosave tick.
"""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path

import pytest

from branch_thinking import BranchState, PersistenceError, PersistenceManager
from branch_thinking import persistence as persistence_module
from branch_thinking.persistence import BRANCH_DIR_NAME, INDEX_FILE_NAME
from tests.conftest import make_manager


def _populate(manager) -> None:
    manager.add_thought({"content": "Investigate latency spike", "type": "hypothesis", "confidence": 0.6})
    manager.add_thought(
        {
            "content": "GC pause is root cause",
            "type": "analysis",
            "confidence": 0.9,
            "keyPoints": ["GC pause causes p99 spike"],
            "branchId": "b1",
        }
    )
    manager.add_thought(
        {
            "content": "Allocation rate doubled",
            "type": "observation",
            "branchId": "alloc",
            "parentBranchId": "b1",
            "crossRefs": [{"toBranch": "b1", "type": "supports", "reason": "explains GC"}],
        }
    )


@pytest.fixture
def saved_dir(tmp_path: Path) -> Path:
    manager = make_manager()
    _populate(manager)
    with PersistenceManager(manager, tmp_path) as persistence:
        assert persistence.save_state() == 2
    return tmp_path


class TestSaveState:
    def test_layout(self, saved_dir: Path) -> None:
        files = sorted(p.name for p in (saved_dir / BRANCH_DIR_NAME).iterdir())
        assert files == ["alloc.json", "b1.json"]
        assert (saved_dir / INDEX_FILE_NAME).exists()

    def test_branch_file_is_json(self, saved_dir: Path) -> None:
        data = json.loads((saved_dir / BRANCH_DIR_NAME / "b1.json").read_text(encoding="utf-8"))
        assert data["id"] == "b1"
        assert data["state"] == "suspended"
        assert len(data["thoughts"]) == 2
        assert data["thoughts"][0]["timestamp"].startswith("2026-01-01T00:00:01")

    def test_index_listing(self, saved_dir: Path) -> None:
        with PersistenceManager(make_manager(), saved_dir) as persistence:
            entries = persistence.list_index()
        assert [e.id for e in entries] == ["b1", "alloc"]
        assert entries[0].thought_count == 2
        assert entries[1].state == BranchState.ACTIVE

    def test_index_tracks_latest_save(self, tmp_path: Path) -> None:
        manager = make_manager()
        with PersistenceManager(manager, tmp_path) as persistence:
            manager.add_thought({"content": "c", "type": "t"})
            persistence.save_state()
            manager.add_thought({"content": "c", "type": "t", "branchId": "b1"})
            persistence.save_state()
            [entry] = persistence.list_index()
        assert entry.thought_count == 2

    def test_empty_manager(self, tmp_path: Path) -> None:
        with PersistenceManager(make_manager(), tmp_path) as persistence:
            assert persistence.save_state() == 0
            assert persistence.list_index() == []

    def test_snapshot_is_independent(self) -> None:
        manager = make_manager()
        _populate(manager)
        persistence = PersistenceManager(manager, "unused")
        snapshot = persistence.snapshot()
        manager.add_thought({"content": "later", "type": "t", "branchId": "b1"})
        assert len(snapshot[0].thoughts) == 2

    def test_unwritable_dir_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        manager = make_manager()
        manager.add_thought({"content": "c", "type": "t"})
        with PersistenceManager(manager, blocker, write_attempts=1) as persistence:
            with pytest.raises(PersistenceError, match="Failed to save state"):
                persistence.save_state()


class TestLoadState:
    def test_round_trip(self, saved_dir: Path) -> None:
        source = make_manager()
        _populate(source)

        manager = make_manager()
        with PersistenceManager(manager, saved_dir) as persistence:
            assert persistence.load_state() == 2

        for branch in source.get_all_branches():
            assert manager.get_branch(branch.id) == branch
        assert manager.get_incoming_reference_count("b1") == 1
        assert manager.get_active_branch().id == "alloc"

    def test_missing_dir_is_empty(self, tmp_path: Path) -> None:
        manager = make_manager()
        with PersistenceManager(manager, tmp_path / "nothing") as persistence:
            assert persistence.load_state() == 0
            assert persistence.list_index() == []
        assert len(manager) == 0

    def test_corrupt_file(self, saved_dir: Path) -> None:
        (saved_dir / BRANCH_DIR_NAME / "b1.json").write_text("{not json", encoding="utf-8")
        with PersistenceManager(make_manager(), saved_dir) as persistence:
            with pytest.raises(PersistenceError, match="Failed to load"):
                persistence.load_state()

    def test_invalid_record(self, saved_dir: Path) -> None:
        (saved_dir / BRANCH_DIR_NAME / "b1.json").write_text('{"id": "b1"}', encoding="utf-8")
        with PersistenceManager(make_manager(), saved_dir) as persistence:
            with pytest.raises(PersistenceError):
                persistence.load_state()

    def test_load_merges_with_larger_in_memory_branch(self, saved_dir: Path) -> None:
        manager = make_manager()
        _populate(manager)
        manager.add_thought({"content": "extra", "type": "t", "branchId": "b1"})
        with PersistenceManager(manager, saved_dir) as persistence:
            persistence.load_state()
        assert len(manager.get_branch("b1").thoughts) == 3

    def test_temp_files_ignored(self, saved_dir: Path) -> None:
        (saved_dir / BRANCH_DIR_NAME / ".b1.abc.tmp").write_text("partial", encoding="utf-8")
        with PersistenceManager(make_manager(), saved_dir) as persistence:
            assert persistence.load_state() == 2

    def test_replays_in_creation_order(self, tmp_path: Path) -> None:
        source = make_manager()
        for i in range(12):
            source.add_thought({"content": f"idea {i}", "type": "hypothesis"})
        with PersistenceManager(source, tmp_path) as persistence:
            persistence.save_state()

        manager = make_manager()
        with PersistenceManager(manager, tmp_path) as persistence:
            assert persistence.load_state() == 12

        expected = [f"b{i}" for i in range(1, 13)]
        assert [b.id for b in source.get_all_branches()] == expected
        assert [b.id for b in manager.get_all_branches()] == expected
        assert manager.add_thought({"content": "next", "type": "t"}).branch_id == "b13"

    def test_nothing_replayed_when_any_file_is_corrupt(self, saved_dir: Path) -> None:
        (saved_dir / BRANCH_DIR_NAME / "b1.json").write_text("{not json", encoding="utf-8")
        manager = make_manager()
        with PersistenceManager(manager, saved_dir) as persistence:
            with pytest.raises(PersistenceError):
                persistence.load_state()
        assert len(manager) == 0


class TestAutosave:
    def test_tick_writes_files(self, tmp_path: Path) -> None:
        manager = make_manager()
        _populate(manager)
        with PersistenceManager(manager, tmp_path) as persistence:
            assert asyncio.run(persistence.autosave_tick()) is True
        assert (tmp_path / BRANCH_DIR_NAME / "b1.json").exists()

    def test_tick_failure_is_logged(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        manager = make_manager()
        manager.add_thought({"content": "c", "type": "t"})
        with PersistenceManager(manager, blocker, write_attempts=1) as persistence:
            with caplog.at_level("WARNING", logger="branch_thinking.persistence"):
                assert asyncio.run(persistence.autosave_tick()) is False
        assert "Auto-save failed" in caplog.text

    def test_start_and_stop(self, tmp_path: Path) -> None:
        async def run() -> tuple[bool, bool]:
            persistence = PersistenceManager(make_manager(), tmp_path)
            persistence.start_autosave(3600)
            await asyncio.sleep(0)
            running = persistence.autosave_running
            persistence.close()
            return running, persistence.autosave_running

        assert asyncio.run(run()) == (True, False)

    def test_restart_replaces_task(self, tmp_path: Path) -> None:
        async def run() -> bool:
            persistence = PersistenceManager(make_manager(), tmp_path)
            first = persistence.start_autosave(3600)
            second = persistence.start_autosave(3600)
            await asyncio.sleep(0)
            cancelled = first.cancelled()
            persistence.close()
            return cancelled and first is not second

        assert asyncio.run(run()) is True

    def test_final_save_waits_for_in_flight_tick(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        manager = make_manager()
        _populate(manager)
        persistence = PersistenceManager(manager, tmp_path)

        entered = threading.Event()
        release = threading.Event()
        write_atomic = persistence_module._write_atomic

        def slow_write(path: Path, text: str) -> None:
            entered.set()
            release.wait(5)
            write_atomic(path, text)

        monkeypatch.setattr(persistence_module, "_write_atomic", slow_write)

        async def run() -> bool:
            tick = asyncio.get_running_loop().create_task(persistence.autosave_tick())
            assert await asyncio.to_thread(entered.wait, 5)
            tick.cancel()

            manager.add_thought({"content": "late", "type": "t", "branchId": "b1"})
            final = threading.Thread(target=persistence.save_state)
            final.start()
            final.join(0.2)
            blocked = final.is_alive()
            release.set()
            await asyncio.to_thread(final.join, 5)
            return blocked and not final.is_alive()

        assert asyncio.run(run()) is True
        entries = {e.id: e for e in persistence.list_index()}
        persistence.close()
        assert entries["b1"].thought_count == 3
        saved = json.loads((tmp_path / BRANCH_DIR_NAME / "b1.json").read_text(encoding="utf-8"))
        assert len(saved["thoughts"]) == 3
