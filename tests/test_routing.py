"""Unit tests for the Routing / Scoring Engine."""

from datetime import datetime, timedelta, timezone

import pytest

from orchestrator.errors import NotFoundError
from orchestrator.routing.scoring import Router, RoutingConfig, score_graphs, select_graph
from orchestrator.threads.manager import GraphHistory

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
CONFIG = RoutingConfig()

VOCABULARY = {
    "researchGraph": ["research", "invention", "@research"],
    "monetizationGraph": ["monetization", "pricing", "@monetization"],
}


def _history(count=1, minutes_ago=60):
    return GraphHistory(
        count=count,
        last_updated_at=NOW - timedelta(minutes=minutes_ago),
        thread_id="t",
        root_id="r",
    )


class TestScoreGraphs:

    def test_word_match(self):
        scores = score_graphs("my invention research", VOCABULARY, {}, CONFIG, now=NOW)
        assert scores == {"researchGraph": 2, "monetizationGraph": 0}

    def test_keyword_match_scores_higher(self):
        scores = score_graphs("@monetization please", VOCABULARY, {}, CONFIG, now=NOW)
        # "@monetization" contains "monetization" too
        assert scores["monetizationGraph"] == 11

    def test_match_is_case_sensitive(self):
        scores = score_graphs("RESEARCH", VOCABULARY, {}, CONFIG, now=NOW)
        assert scores["researchGraph"] == 0

    def test_thread_points(self):
        history = {"monetizationGraph": _history(count=3, minutes_ago=60)}
        scores = score_graphs("hello", VOCABULARY, history, CONFIG, now=NOW)
        assert scores == {"researchGraph": 0, "monetizationGraph": 3}

    def test_recency_bonus(self):
        history = {"monetizationGraph": _history(count=1, minutes_ago=1)}
        scores = score_graphs("hello", VOCABULARY, history, CONFIG, now=NOW)
        assert scores["monetizationGraph"] == 1 + 5

    def test_recency_window_is_exclusive(self):
        history = {"monetizationGraph": _history(count=1, minutes_ago=5)}
        scores = score_graphs("hello", VOCABULARY, history, CONFIG, now=NOW)
        assert scores["monetizationGraph"] == 1

    def test_custom_points(self):
        config = RoutingConfig(word_points=2, keyword_points=20)
        scores = score_graphs("@research research", VOCABULARY, {}, config, now=NOW)
        assert scores["researchGraph"] == 22


class TestSelectGraph:

    def test_highest_wins(self):
        assert select_graph({"a": 1, "b": 3, "c": 2}) == "b"

    def test_ties_go_to_first(self):
        assert select_graph({"a": 2, "b": 2}) == "a"

    def test_all_zero_selects_first(self):
        assert select_graph({"a": 0, "b": 0}) == "a"

    def test_no_graphs(self):
        with pytest.raises(NotFoundError):
            select_graph({})


class TestRouter:

    def test_route_is_deterministic(self):
        router = Router(lambda: VOCABULARY, clock=lambda: NOW)
        results = {router.route("pricing for my research", {}) for _ in range(5)}
        # One point each: tie goes to the first registered graph
        assert results == {"researchGraph"}

    def test_history_shifts_selection(self):
        router = Router(lambda: VOCABULARY, config=CONFIG, clock=lambda: NOW)
        history = {"monetizationGraph": _history(count=1, minutes_ago=1)}
        assert router.route("research", history) == "monetizationGraph"

    def test_keyword_overrides_history(self):
        router = Router(lambda: VOCABULARY, config=CONFIG, clock=lambda: NOW)
        history = {"monetizationGraph": _history(count=1, minutes_ago=1)}
        assert router.route("@research now", history) == "researchGraph"

    def test_vocabulary_read_on_every_call(self):
        vocabulary = dict(VOCABULARY)
        router = Router(lambda: vocabulary, config=CONFIG, clock=lambda: NOW)
        assert router.route("@support", {}) == "researchGraph"
        vocabulary["supportGraph"] = ["@support"]
        assert router.route("@support", {}) == "supportGraph"

    def test_settings_config(self):
        config = RoutingConfig.from_settings()
        assert config.keyword_points == 10
        assert config.recency_window == timedelta(minutes=5)
