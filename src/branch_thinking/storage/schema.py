"""SQLAlchemy ORM schema for the branch index.

Defines the index tables: branch_index and _meta.

IMPORTANT: BranchState is imported from the domain models -- it is NOT
redefined here. The ORM uses the same Python enum.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from branch_thinking.models.branch import BranchState

SCHEMA_VERSION = "1"


class Base(DeclarativeBase):
    """Base class for all branch-thinking ORM models."""

    pass


class BranchIndexRow(Base):
    """Summary of one persisted branch file."""

    __tablename__ = "branch_index"

    branch_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    state: Mapped[BranchState] = mapped_column(nullable=False)
    priority: Mapped[float] = mapped_column(Float, nullable=False)
    thought_count: Mapped[int] = mapped_column(Integer, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_branch_index_priority", "priority"),
    )


class MetaRow(Base):
    """Key-value metadata (schema version)."""

    __tablename__ = "_meta"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
