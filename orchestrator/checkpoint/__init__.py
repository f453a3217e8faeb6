from .base import Checkpoint, CheckpointStore, ExecutionStatus
from .memory import InMemoryCheckpointStore

__all__ = ["Checkpoint", "CheckpointStore", "ExecutionStatus", "InMemoryCheckpointStore"]
