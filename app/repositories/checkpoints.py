"""Repository layer for checkpoint persistence.

SQL-backed checkpoint store. Saves are compare-and-swap on ``version``:
version 0 inserts, any other version updates only the row still holding
that version.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.db import CheckpointModel
from orchestrator.checkpoint.base import Checkpoint, ExecutionStatus
from orchestrator.errors import CheckpointConflictError
from orchestrator.state.serde import decode_state, decode_value, encode_state, encode_value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_checkpoint(row: CheckpointModel) -> Checkpoint:
    return Checkpoint(
        thread_id=row.thread_id,
        graph_type=row.graph_type,
        values=decode_state(row.values or {}),
        status=ExecutionStatus(row.status),
        frontier=list(row.frontier or []),
        executed=list(row.executed or []),
        step=row.step,
        pending_interrupt=decode_value(row.pending_interrupt),
        interrupted_node=row.interrupted_node,
        error=row.error,
        version=row.version,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlCheckpointStore:
    """Data access layer for checkpoints."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        async with self.session_factory() as session:
            row = await session.get(CheckpointModel, thread_id)
            return _to_checkpoint(row) if row else None

    async def _current_version(self, thread_id: str) -> Optional[int]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CheckpointModel.version).where(CheckpointModel.thread_id == thread_id)
            )
            return result.scalar_one_or_none()

    async def save(self, checkpoint: Checkpoint) -> Checkpoint:
        now = _utcnow()
        fields = dict(
            graph_type=checkpoint.graph_type,
            status=checkpoint.status.value,
            values=encode_state(checkpoint.values),
            frontier=list(checkpoint.frontier),
            executed=list(checkpoint.executed),
            step=checkpoint.step,
            pending_interrupt=encode_value(checkpoint.pending_interrupt),
            interrupted_node=checkpoint.interrupted_node,
            error=checkpoint.error,
            version=checkpoint.version + 1,
            updated_at=now,
        )

        async with self.session_factory() as session:
            if checkpoint.version == 0:
                session.add(CheckpointModel(
                    thread_id=checkpoint.thread_id,
                    created_at=checkpoint.created_at,
                    **fields,
                ))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    raise CheckpointConflictError(
                        checkpoint.thread_id, 0,
                        await self._current_version(checkpoint.thread_id),
                    )
            else:
                result = await session.execute(
                    update(CheckpointModel)
                    .where(
                        CheckpointModel.thread_id == checkpoint.thread_id,
                        CheckpointModel.version == checkpoint.version,
                    )
                    .values(**fields)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise CheckpointConflictError(
                        checkpoint.thread_id, checkpoint.version,
                        await self._current_version(checkpoint.thread_id),
                    )
                await session.commit()

        saved = await self.load(checkpoint.thread_id)
        if saved is None:
            # Row removed between the write and the read-back
            raise CheckpointConflictError(checkpoint.thread_id, checkpoint.version + 1, None)
        return saved
