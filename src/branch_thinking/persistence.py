"""File persistence for branches.

Layout under the storage directory::

    branches/<branch_id>.json   full ThoughtBranch, timestamps as ISO-8601
    index.db                    SQLite summary of every branch (fast listing)

The persistence layer touches the core through two operations only:
BranchManager.get_all_branches() to snapshot and
BranchManager.reconstruct_branch() to rehydrate. Persistence is best
effort: a failed autosave is logged and retried on the next tick.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import tenacity
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from branch_thinking.exceptions import BranchThinkingError, PersistenceError
from branch_thinking.models.branch import ThoughtBranch
from branch_thinking.storage.engine import (
    create_index_engine,
    create_session_factory,
    init_db,
)
from branch_thinking.storage.sqlite import SqliteBranchIndexRepository

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from branch_thinking.manager import BranchManager
    from branch_thinking.models.branch import BranchIndexEntry

logger = logging.getLogger(__name__)

BRANCH_DIR_NAME = "branches"
INDEX_FILE_NAME = "index.db"

_WRITE_ATTEMPTS = 3


def _write_atomic(path: Path, text: str) -> None:
    """Write to a temp file in the same directory, then rename over path."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class PersistenceManager:
    """Snapshots a BranchManager to disk and replays it at startup.

    Usage::

        persistence = PersistenceManager(manager, "~/.branch-thinking")
        persistence.load_state()
        ...
        persistence.save_state()
        persistence.close()
    """

    def __init__(
        self,
        manager: BranchManager,
        storage_dir: str | os.PathLike[str],
        *,
        write_attempts: int = _WRITE_ATTEMPTS,
    ) -> None:
        self._manager = manager
        self._storage_dir = Path(storage_dir).expanduser()
        self._branch_dir = self._storage_dir / BRANCH_DIR_NAME
        self._write_attempts = write_attempts
        self._engine: Engine | None = None
        self._session: Session | None = None
        self._autosave_task: asyncio.Task[None] | None = None
        # Serializes writes and index access; an autosave worker thread can
        # outlive its cancelled task.
        self._io_lock = threading.Lock()

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    def branch_path(self, branch_id: str) -> Path:
        return self._branch_dir / f"{branch_id}.json"

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def snapshot(self) -> list[ThoughtBranch]:
        """Deep-copy every branch. Must run before any I/O starts."""
        return [branch.model_copy(deep=True) for branch in self._manager.get_all_branches()]

    def save_state(self) -> int:
        """Snapshot the manager and write it out.

        Returns:
            Number of branch files written.

        Raises:
            PersistenceError: If a file or the index cannot be written.
        """
        return self.write_snapshot(self.snapshot())

    def write_snapshot(self, branches: list[ThoughtBranch]) -> int:
        """Write already-snapshotted branches and refresh the index.

        Safe to call from a worker thread: it only touches the copies, and
        concurrent calls run one at a time.
        """
        with self._io_lock:
            try:
                self._branch_dir.mkdir(parents=True, exist_ok=True)
                retryer = tenacity.Retrying(
                    retry=tenacity.retry_if_exception_type(OSError),
                    wait=tenacity.wait_exponential(multiplier=0.05, max=1),
                    stop=tenacity.stop_after_attempt(self._write_attempts),
                    before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
                    reraise=True,
                )
                for branch in branches:
                    text = json.dumps(branch.model_dump(mode="json"), indent=2, ensure_ascii=False)
                    retryer(_write_atomic, self.branch_path(branch.id), text)
                self._index_repo().replace_all(b.to_index_entry() for b in branches)
            except (OSError, SQLAlchemyError) as e:
                raise PersistenceError(f"Failed to save state to {self._storage_dir}: {e}") from e

        logger.info("Saved %d branch(es) to %s", len(branches), self._storage_dir)
        return len(branches)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load_state(self) -> int:
        """Replay every persisted branch into the manager.

        Every file is parsed before any is replayed; records are then
        replayed in creation order (created_at, then id) so the manager
        lists branches as they were originally created. A missing storage
        directory is an empty state, not an error.

        Returns:
            Number of branch records replayed.

        Raises:
            PersistenceError: If any file cannot be read, parsed or replayed.
        """
        if not self._branch_dir.exists():
            logger.info("No saved branches in %s", self._storage_dir)
            return 0

        try:
            records = [
                ThoughtBranch.model_validate(json.loads(path.read_text(encoding="utf-8")))
                for path in sorted(self._branch_dir.glob("*.json"))
            ]
            records.sort(key=lambda b: (b.created_at, b.id))
            for record in records:
                self._manager.reconstruct_branch(record)
        except (OSError, ValueError, ValidationError, BranchThinkingError) as e:
            raise PersistenceError(f"Failed to load persisted state: {e}") from e

        logger.info("Loaded %d branch record(s) from %s", len(records), self._storage_dir)
        return len(records)

    def list_index(self) -> list[BranchIndexEntry]:
        """Read branch summaries from the index without opening branch files."""
        if not (self._storage_dir / INDEX_FILE_NAME).exists():
            return []
        try:
            with self._io_lock:
                return list(self._index_repo().list_all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read branch index: {e}") from e

    # ------------------------------------------------------------------
    # Autosave
    # ------------------------------------------------------------------

    async def autosave_tick(self) -> bool:
        """Run one guarded save. Returns False (and logs) on failure."""
        branches = self.snapshot()
        try:
            await asyncio.to_thread(self.write_snapshot, branches)
        except PersistenceError as e:
            logger.warning("Auto-save failed, will retry next tick: %s", e)
            return False
        return True

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.autosave_tick()

    def start_autosave(self, interval: float) -> asyncio.Task[None]:
        """Start periodic saving on the running event loop.

        Restarts the loop if one is already running.
        """
        self.stop_autosave()
        self._autosave_task = asyncio.get_running_loop().create_task(
            self._autosave_loop(interval)
        )
        logger.debug("Auto-save every %.1fs", interval)
        return self._autosave_task

    def stop_autosave(self) -> None:
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            self._autosave_task = None

    @property
    def autosave_running(self) -> bool:
        return self._autosave_task is not None and not self._autosave_task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.stop_autosave()
        with self._io_lock:
            if self._session is not None:
                self._session.close()
                self._session = None
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None

    def __enter__(self) -> PersistenceManager:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _index_repo(self) -> SqliteBranchIndexRepository:
        if self._session is None:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
            self._engine = create_index_engine(str(self._storage_dir / INDEX_FILE_NAME))
            init_db(self._engine)
            self._session = create_session_factory(self._engine)()
        return SqliteBranchIndexRepository(self._session)
