"""Shared test fixtures for branch-thinking.

Provides a deterministic clock, manager factories, and in-memory SQLite
index fixtures.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session, sessionmaker

from branch_thinking.manager import BranchManager
from branch_thinking.storage.engine import create_index_engine, init_db
from branch_thinking.storage.sqlite import SqliteBranchIndexRepository

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class StepClock:
    """Clock that advances a fixed step on every call."""

    def __init__(self, start: datetime = EPOCH, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


def make_manager(**kwargs) -> BranchManager:
    """Create a BranchManager with a deterministic clock and thought ids."""
    counter = iter(range(1, 1_000_000))
    kwargs.setdefault("clock", StepClock())
    kwargs.setdefault("thought_id_factory", lambda: f"thought-{next(counter):04d}")
    return BranchManager(**kwargs)


@pytest.fixture
def manager() -> BranchManager:
    return make_manager()


@pytest.fixture
def engine():
    """In-memory SQLite engine with all index tables created."""
    eng = create_index_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def index_repo(session: Session) -> SqliteBranchIndexRepository:
    return SqliteBranchIndexRepository(session)
