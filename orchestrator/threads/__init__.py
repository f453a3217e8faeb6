from .manager import GraphHistory, ResolvedThread, ThreadLifecycleManager, new_thread_ids
from .store import InMemoryThreadRepository, ThreadRecord, ThreadRepository, thread_key

__all__ = [
    "GraphHistory",
    "InMemoryThreadRepository",
    "ResolvedThread",
    "ThreadLifecycleManager",
    "ThreadRecord",
    "ThreadRepository",
    "new_thread_ids",
    "thread_key",
]
