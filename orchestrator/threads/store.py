"""Thread records and the in-memory repository.

A thread is one (user, graph type) conversation. ``(user_id, thread_id)``
is unique; ``last_updated_at`` is the only field that changes after
creation. Creation is first-writer-wins: creating a record whose key
already exists returns the stored record unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, runtime_checkable


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def thread_key(user_id: str, thread_id: str) -> str:
    return f"{user_id}::{thread_id}"


@dataclass(frozen=True)
class ThreadRecord:
    user_id: str
    thread_id: str
    root_id: str
    graph_type: str
    created_at: datetime
    last_updated_at: datetime

    @property
    def key(self) -> str:
        return thread_key(self.user_id, self.thread_id)

    def to_dict(self) -> Dict[str, str]:
        return {
            "user_id": self.user_id,
            "thread_id": self.thread_id,
            "root_id": self.root_id,
            "graph_type": self.graph_type,
            "created_at": self.created_at.isoformat(),
            "last_updated_at": self.last_updated_at.isoformat(),
        }


@runtime_checkable
class ThreadRepository(Protocol):
    async def create_thread(
        self,
        user_id: str,
        thread_id: str,
        root_id: str,
        graph_type: str,
        created_at: Optional[datetime] = None,
    ) -> ThreadRecord:
        ...

    async def find_threads_by_user(self, user_id: str) -> List[ThreadRecord]:
        ...

    async def find_by_user_and_thread(self, user_id: str, thread_id: str) -> Optional[ThreadRecord]:
        ...

    async def find_last_updated_thread(self, user_id: Optional[str] = None) -> Optional[ThreadRecord]:
        ...

    async def update_last_updated_at(
        self, user_id: str, thread_id: str, at: Optional[datetime] = None,
    ) -> Optional[ThreadRecord]:
        ...


class InMemoryThreadRepository:
    """Dict-backed thread repository keyed by ``user_id::thread_id``."""

    def __init__(self):
        self._records: Dict[str, ThreadRecord] = {}

    async def create_thread(
        self,
        user_id: str,
        thread_id: str,
        root_id: str,
        graph_type: str,
        created_at: Optional[datetime] = None,
    ) -> ThreadRecord:
        key = thread_key(user_id, thread_id)
        existing = self._records.get(key)
        if existing is not None:
            return existing

        created_at = created_at or _utcnow()
        record = ThreadRecord(
            user_id=user_id,
            thread_id=thread_id,
            root_id=root_id,
            graph_type=graph_type,
            created_at=created_at,
            last_updated_at=created_at,
        )
        self._records[key] = record
        return record

    async def find_threads_by_user(self, user_id: str) -> List[ThreadRecord]:
        return [r for r in self._records.values() if r.user_id == user_id]

    async def find_by_user_and_thread(self, user_id: str, thread_id: str) -> Optional[ThreadRecord]:
        return self._records.get(thread_key(user_id, thread_id))

    async def find_last_updated_thread(self, user_id: Optional[str] = None) -> Optional[ThreadRecord]:
        candidates = [
            r for r in self._records.values() if user_id is None or r.user_id == user_id
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.last_updated_at)

    async def update_last_updated_at(
        self, user_id: str, thread_id: str, at: Optional[datetime] = None,
    ) -> Optional[ThreadRecord]:
        key = thread_key(user_id, thread_id)
        current = self._records.get(key)
        if current is None:
            return None
        updated = replace(current, last_updated_at=at or _utcnow())
        self._records[key] = updated
        return updated
