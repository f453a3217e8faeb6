"""Thread Lifecycle Manager

Summarizes a user's threads per graph type and decides, for a selected
graph type, whether to reuse the most recently updated thread or mint a
new one. A user has at most one active thread per graph type.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple

from .store import ThreadRepository

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class GraphHistory:
    """Per graph type: thread count and the most recently updated thread."""

    count: int
    last_updated_at: datetime
    thread_id: str
    root_id: str


@dataclass(frozen=True)
class ResolvedThread:
    thread_id: str
    root_id: str
    new_thread: bool


def new_thread_ids(graph_type: str) -> Tuple[str, str]:
    """Mint ``(thread_id, root_id)`` from a timestamp plus random suffix."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(8))
    part = f"thread_{int(time.time() * 1000)}_{suffix}"
    return f"{graph_type}_{part}", f"root_{part}"


class ThreadLifecycleManager:
    def __init__(self, repository: ThreadRepository):
        self.repository = repository
        self._creation_locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._lock_holders: Dict[Tuple[str, str], int] = {}

    async def summarize_by_graph_type(self, user_id: str) -> Dict[str, GraphHistory]:
        """Aggregate the user's threads: count plus the latest thread per graph type."""
        summary: Dict[str, GraphHistory] = {}
        for record in await self.repository.find_threads_by_user(user_id):
            existing = summary.get(record.graph_type)
            if existing is None:
                summary[record.graph_type] = GraphHistory(
                    count=1,
                    last_updated_at=record.last_updated_at,
                    thread_id=record.thread_id,
                    root_id=record.root_id,
                )
                continue

            latest = record.last_updated_at > existing.last_updated_at
            summary[record.graph_type] = GraphHistory(
                count=existing.count + 1,
                last_updated_at=record.last_updated_at if latest else existing.last_updated_at,
                thread_id=record.thread_id if latest else existing.thread_id,
                root_id=record.root_id if latest else existing.root_id,
            )
        return summary

    async def resolve_thread(
        self,
        user_id: str,
        graph_type: str,
        summary: Optional[Dict[str, GraphHistory]] = None,
    ) -> ResolvedThread:
        """Reuse the user's latest thread of ``graph_type`` or create one.

        Creation for the same (user, graph type) is serialized and re-checked
        against the repository, so concurrent first messages share one thread.
        """
        if summary is None:
            summary = await self.summarize_by_graph_type(user_id)

        history = summary.get(graph_type)
        if history is not None:
            return await self._reuse(user_id, history)

        key = (user_id, graph_type)
        lock = self._creation_locks.setdefault(key, asyncio.Lock())
        self._lock_holders[key] = self._lock_holders.get(key, 0) + 1
        try:
            async with lock:
                return await self._create_once(user_id, graph_type)
        finally:
            self._lock_holders[key] -= 1
            if not self._lock_holders[key]:
                del self._lock_holders[key]
                del self._creation_locks[key]

    async def _create_once(self, user_id: str, graph_type: str) -> ResolvedThread:
        # Another request may have created the thread while we waited
        history = (await self.summarize_by_graph_type(user_id)).get(graph_type)
        if history is not None:
            return await self._reuse(user_id, history)

        thread_id, root_id = new_thread_ids(graph_type)
        record = await self.repository.create_thread(
            user_id=user_id,
            thread_id=thread_id,
            root_id=root_id,
            graph_type=graph_type,
        )
        logger.info(f"Created thread {record.thread_id} for user {user_id} ({graph_type})")
        return ResolvedThread(record.thread_id, record.root_id, new_thread=True)

    async def _reuse(self, user_id: str, history: GraphHistory) -> ResolvedThread:
        await self.repository.update_last_updated_at(user_id, history.thread_id)
        logger.info(f"Reusing thread {history.thread_id} for user {user_id}")
        return ResolvedThread(history.thread_id, history.root_id, new_thread=False)
