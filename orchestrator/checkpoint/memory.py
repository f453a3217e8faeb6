"""In-process checkpoint store."""

from __future__ import annotations

import copy
from dataclasses import replace
from typing import Dict, List, Optional

from ..errors import CheckpointConflictError
from .base import Checkpoint, _utcnow


class InMemoryCheckpointStore:
    """Dict-backed store; values are deep-copied on the way in and out."""

    def __init__(self):
        self._checkpoints: Dict[str, Checkpoint] = {}

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        stored = self._checkpoints.get(thread_id)
        return copy.deepcopy(stored) if stored is not None else None

    async def save(self, checkpoint: Checkpoint) -> Checkpoint:
        stored = self._checkpoints.get(checkpoint.thread_id)
        current_version = stored.version if stored is not None else 0
        if current_version != checkpoint.version:
            raise CheckpointConflictError(
                checkpoint.thread_id, checkpoint.version,
                stored.version if stored is not None else None,
            )

        saved = replace(
            copy.deepcopy(checkpoint),
            version=checkpoint.version + 1,
            created_at=stored.created_at if stored is not None else checkpoint.created_at,
            updated_at=_utcnow(),
        )
        self._checkpoints[checkpoint.thread_id] = saved
        return copy.deepcopy(saved)

    def thread_ids(self) -> List[str]:
        return list(self._checkpoints)
