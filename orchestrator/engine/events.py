"""Events streamed by the executor and the orchestrator service.

A stream is a sequence of StepEvents ending in exactly one InterruptEvent,
CompletionEvent or FailureEvent. The service prepends a ThreadSelectedEvent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from ..state.serde import to_jsonable


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StepEvent:
    node: str
    update: Dict[str, Any]
    step: int
    thread_id: str = ""
    timestamp: str = field(default_factory=_now)

    type = "step"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "node": self.node,
            "update": to_jsonable(self.update),
            "step": self.step,
            "thread_id": self.thread_id,
            "timestamp": self.timestamp,
        }


@dataclass
class InterruptEvent:
    node: str
    payload: Any
    thread_id: str = ""
    timestamp: str = field(default_factory=_now)

    type = "interrupt"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "node": self.node,
            "payload": to_jsonable(self.payload),
            "thread_id": self.thread_id,
            "timestamp": self.timestamp,
        }


@dataclass
class CompletionEvent:
    state: Dict[str, Any]
    thread_id: str = ""
    timestamp: str = field(default_factory=_now)

    type = "complete"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "state": to_jsonable(self.state),
            "thread_id": self.thread_id,
            "timestamp": self.timestamp,
        }


@dataclass
class FailureEvent:
    error: str
    error_type: str
    node: Optional[str] = None
    thread_id: str = ""
    timestamp: str = field(default_factory=_now)

    type = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "error": self.error,
            "error_type": self.error_type,
            "node": self.node,
            "thread_id": self.thread_id,
            "timestamp": self.timestamp,
        }


@dataclass
class ThreadSelectedEvent:
    graph_type: str
    thread_id: str
    root_id: str
    new_thread: bool
    timestamp: str = field(default_factory=_now)

    type = "thread"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "graph_type": self.graph_type,
            "thread_id": self.thread_id,
            "root_id": self.root_id,
            "new_thread": self.new_thread,
            "timestamp": self.timestamp,
        }


ExecutionEvent = Union[StepEvent, InterruptEvent, CompletionEvent, FailureEvent]
