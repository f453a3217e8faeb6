from .checkpoints import SqlCheckpointStore
from .threads import SqlThreadRepository

__all__ = ["SqlCheckpointStore", "SqlThreadRepository"]
