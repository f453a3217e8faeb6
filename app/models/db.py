"""SQLAlchemy ORM models for the orchestrator.

Tables:
- threads: one row per (user, thread), the graph type it runs and recency
- checkpoints: latest execution state per thread, versioned for compare-and-swap
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Thread ──────────────────────────────────────────────────────────


class ThreadModel(Base):
    """A user's conversation thread on one graph type.

    ``id`` is ``user_id::thread_id``; the pair is also unique on its own.
    """

    __tablename__ = "threads"

    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    thread_id: Mapped[str] = mapped_column(String(255), nullable=False)
    root_id: Mapped[str] = mapped_column(String(255), nullable=False)
    graph_type: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "thread_id", name="uq_threads_user_thread"),
        Index("ix_threads_user_id", "user_id"),
    )


# ─── Checkpoint ──────────────────────────────────────────────────────


class CheckpointModel(Base):
    """Latest execution state of a thread.

    ``values`` holds the encoded state (messages tagged for round-trip).
    ``version`` increments on every save.
    """

    __tablename__ = "checkpoints"

    thread_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    graph_type: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="ready",
        comment="ready | suspended | completed | failed",
    )
    values: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    frontier: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    executed: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    pending_interrupt: Mapped[Optional[Any]] = mapped_column(
        JSON, nullable=True, comment="Interrupt payload while suspended",
    )
    interrupted_node: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        Index("ix_checkpoints_status", "status"),
    )
