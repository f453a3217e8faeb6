"""Checkpoint model and store protocol.

A checkpoint is the durable execution state of one thread: the state
values, where the walk stands (executed nodes + frontier), and the pending
interrupt when suspended. Stores apply compare-and-swap on ``version``:
a save succeeds only if the stored version equals the checkpoint's version
(0 = must not exist yet), and returns the checkpoint at version + 1.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..state.serde import to_jsonable


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionStatus(str, enum.Enum):
    READY = "ready"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Checkpoint:
    """Execution state of one thread."""

    thread_id: str
    graph_type: str
    values: Dict[str, Any] = field(default_factory=dict)
    status: ExecutionStatus = ExecutionStatus.READY
    frontier: List[str] = field(default_factory=list)
    executed: List[str] = field(default_factory=list)
    step: int = 0
    pending_interrupt: Any = None
    interrupted_node: Optional[str] = None
    error: Optional[str] = None
    version: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_suspended(self) -> bool:
        return self.status == ExecutionStatus.SUSPENDED

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly snapshot for API responses."""
        return {
            "thread_id": self.thread_id,
            "graph_type": self.graph_type,
            "values": to_jsonable(self.values),
            "status": self.status.value,
            "frontier": list(self.frontier),
            "executed": list(self.executed),
            "step": self.step,
            "pending_interrupt": to_jsonable(self.pending_interrupt),
            "interrupted_node": self.interrupted_node,
            "error": self.error,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@runtime_checkable
class CheckpointStore(Protocol):
    """Keyed persistence of checkpoints by thread id."""

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        """Return a copy of the stored checkpoint, or None."""
        ...

    async def save(self, checkpoint: Checkpoint) -> Checkpoint:
        """Compare-and-swap on ``checkpoint.version``; return the stored copy.

        Raises:
            CheckpointConflictError: the stored version moved on
        """
        ...
