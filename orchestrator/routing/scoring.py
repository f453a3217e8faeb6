"""Routing / Scoring Engine

Scores every registered graph type for an inbound message:

- each selection word contained in the message adds ``word_points``
  (``keyword_points`` when the word starts with the keyword marker)
- each existing thread of the graph type adds ``thread_points``
- a thread updated within the recency window adds ``recent_points``

The strictly greatest score wins; ties go to the graph registered first.
Matching is a case-sensitive substring test.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .. import settings
from ..errors import NotFoundError
from ..threads.manager import GraphHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingConfig:
    word_points: int = 1
    keyword_points: int = 10
    thread_points: int = 1
    recent_points: int = 5
    recency_window: timedelta = timedelta(minutes=5)
    keyword_marker: str = "@"

    @classmethod
    def from_settings(cls) -> "RoutingConfig":
        return cls(
            word_points=settings.ROUTING_POINTS_FOR_WORD_MATCH,
            keyword_points=settings.ROUTING_POINTS_FOR_KEYWORD_MATCH,
            thread_points=settings.ROUTING_POINTS_FOR_THREAD,
            recent_points=settings.ROUTING_POINTS_FOR_RECENT,
            recency_window=timedelta(seconds=settings.ROUTING_RECENCY_WINDOW_SECONDS),
            keyword_marker=settings.ROUTING_KEYWORD_MARKER,
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def score_graphs(
    message: str,
    vocabulary: Mapping[str, Sequence[str]],
    history: Mapping[str, GraphHistory],
    config: RoutingConfig,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Score per graph name, in vocabulary order."""
    now = now or _utcnow()
    scores: Dict[str, int] = {}

    for graph_name, words in vocabulary.items():
        score = 0
        for word in words:
            if word and word in message:
                score += config.keyword_points if word.startswith(config.keyword_marker) else config.word_points

        thread_history = history.get(graph_name)
        if thread_history is not None:
            score += thread_history.count * config.thread_points
            if now - thread_history.last_updated_at < config.recency_window:
                score += config.recent_points

        scores[graph_name] = score

    return scores


def select_graph(scores: Mapping[str, int]) -> str:
    """Strictly greatest score; the first graph wins ties."""
    best_name: Optional[str] = None
    best_score = 0
    for graph_name, score in scores.items():
        if best_name is None or score > best_score:
            best_name, best_score = graph_name, score
    if best_name is None:
        raise NotFoundError("No graphs are registered to route to")
    return best_name


class Router:
    """Routes messages to a graph type using the registry's vocabulary.

    Args:
        vocabulary: Callable returning graph name -> selection words
            (usually ``GraphRegistry.list_selection_vocabulary``)
        config: Point values and recency window
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        vocabulary: Callable[[], Mapping[str, List[str]]],
        config: Optional[RoutingConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._vocabulary = vocabulary
        self.config = config or RoutingConfig.from_settings()
        self._clock = clock

    def score(self, message: str, history: Mapping[str, GraphHistory]) -> Dict[str, int]:
        return score_graphs(message, self._vocabulary(), history, self.config, now=self._clock())

    def route(self, message: str, history: Mapping[str, GraphHistory], user_id: str = "") -> str:
        scores = self.score(message, history)
        score_log = ", ".join(f"{name}:{value}" for name, value in scores.items() if value != 0)
        selected = select_graph(scores)
        logger.info(f"Routing scores for user {user_id or '-'}: [{score_log}] -> {selected}")
        return selected
