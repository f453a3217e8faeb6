"""Repository layer for thread persistence.

SQL-backed implementation of the thread repository used by the lifecycle
manager. Each call opens its own session so the repository can be shared
across concurrent requests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.db import ThreadModel
from orchestrator.threads.store import ThreadRecord, thread_key

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: ThreadModel) -> ThreadRecord:
    return ThreadRecord(
        user_id=row.user_id,
        thread_id=row.thread_id,
        root_id=row.root_id,
        graph_type=row.graph_type,
        created_at=_aware(row.created_at),
        last_updated_at=_aware(row.last_updated_at),
    )


class SqlThreadRepository:
    """Data access layer for threads."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_thread(
        self,
        user_id: str,
        thread_id: str,
        root_id: str,
        graph_type: str,
        created_at: Optional[datetime] = None,
    ) -> ThreadRecord:
        created_at = created_at or _utcnow()
        row = ThreadModel(
            id=thread_key(user_id, thread_id),
            user_id=user_id,
            thread_id=thread_id,
            root_id=root_id,
            graph_type=graph_type,
            created_at=created_at,
            last_updated_at=created_at,
        )
        async with self.session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info(f"Thread {thread_key(user_id, thread_id)} already exists")
                existing = await self.find_by_user_and_thread(user_id, thread_id)
                if existing is None:
                    raise
                return existing
            return _to_record(row)

    async def find_threads_by_user(self, user_id: str) -> List[ThreadRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ThreadModel)
                .where(ThreadModel.user_id == user_id)
                .order_by(ThreadModel.created_at)
            )
            return [_to_record(row) for row in result.scalars().all()]

    async def find_by_user_and_thread(self, user_id: str, thread_id: str) -> Optional[ThreadRecord]:
        async with self.session_factory() as session:
            row = await session.get(ThreadModel, thread_key(user_id, thread_id))
            return _to_record(row) if row else None

    async def find_last_updated_thread(self, user_id: Optional[str] = None) -> Optional[ThreadRecord]:
        query = select(ThreadModel).order_by(ThreadModel.last_updated_at.desc()).limit(1)
        if user_id is not None:
            query = query.where(ThreadModel.user_id == user_id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            row = result.scalar_one_or_none()
            return _to_record(row) if row else None

    async def update_last_updated_at(
        self, user_id: str, thread_id: str, at: Optional[datetime] = None,
    ) -> Optional[ThreadRecord]:
        async with self.session_factory() as session:
            row = await session.get(ThreadModel, thread_key(user_id, thread_id))
            if not row:
                return None
            row.last_updated_at = at or _utcnow()
            await session.commit()
            return _to_record(row)
