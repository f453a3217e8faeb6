"""Unit tests for the State Annotation Model

Tests cover:
- Reducers (append, merge, last value)
- Schema declaration, initial values and update validation
- reduce_all purity
- Reduction order: append concatenation, disjoint and overlapping merges
- Built-in schema variants and aliases
- State serialization of langchain messages
"""

from datetime import datetime, timezone

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from orchestrator.errors import StateUpdateError
from orchestrator.state import (
    BUILTIN_SCHEMAS,
    DEFAULT_SCHEMA_NAME,
    StateSchema,
    append_reducer,
    canonical_schema_name,
    last_value,
    merge_reducer,
)
from orchestrator.state.serde import decode_state, encode_state, to_jsonable


class TestReducers:
    """Test the built-in reducer functions."""

    def test_append_concatenates_in_order(self):
        assert append_reducer(["a"], ["b", "c"]) == ["a", "b", "c"]

    def test_append_single_item(self):
        assert append_reducer(["a"], "b") == ["a", "b"]

    def test_append_from_empty(self):
        assert append_reducer(None, ["x"]) == ["x"]
        assert append_reducer([], []) == []

    def test_append_none_update_is_noop(self):
        assert append_reducer(["a"], None) == ["a"]

    def test_append_does_not_mutate(self):
        current = ["a"]
        append_reducer(current, ["b"])
        assert current == ["a"]

    def test_merge_overwrites_keys(self):
        assert merge_reducer({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_merge_does_not_mutate(self):
        current = {"a": 1}
        merge_reducer(current, {"b": 2})
        assert current == {"a": 1}

    def test_last_value(self):
        assert last_value("old", "new") == "new"


class TestStateSchema:
    """Test StateSchema declaration and reduction."""

    def _schema(self) -> StateSchema:
        return (
            StateSchema("test")
            .declare("steps", list, append_reducer)
            .declare("results", dict, merge_reducer)
            .declare("label", str)
        )

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="schema name cannot be empty"):
            StateSchema("")

    def test_field_names_keep_declaration_order(self):
        assert self._schema().field_names == ["steps", "results", "label"]

    def test_contains(self):
        schema = self._schema()
        assert "steps" in schema
        assert "missing" not in schema

    def test_initial_values(self):
        assert self._schema().initial_values() == {"steps": [], "results": {}, "label": ""}

    def test_initial_values_are_fresh(self):
        schema = self._schema()
        first = schema.initial_values()
        first["steps"].append("x")
        assert schema.initial_values()["steps"] == []

    def test_reduce_all_applies_reducers(self):
        schema = self._schema()
        state = schema.initial_values()
        state = schema.reduce_all(state, {"steps": ["A"], "results": {"a": 1}, "label": "one"})
        state = schema.reduce_all(state, {"steps": ["B"], "results": {"b": 2}, "label": "two"})
        assert state == {"steps": ["A", "B"], "results": {"a": 1, "b": 2}, "label": "two"}

    def test_reduce_all_untouched_fields_unchanged(self):
        schema = self._schema()
        state = {"steps": ["A"], "results": {"a": 1}, "label": "keep"}
        assert schema.reduce_all(state, {"steps": ["B"]})["label"] == "keep"

    def test_reduce_all_is_pure(self):
        schema = self._schema()
        current = {"steps": ["A"], "results": {}, "label": ""}
        partial = {"steps": ["B"]}
        result = schema.reduce_all(current, partial)
        assert current == {"steps": ["A"], "results": {}, "label": ""}
        assert partial == {"steps": ["B"]}
        assert result["steps"] == ["A", "B"]

    def test_reduce_all_empty_partial(self):
        schema = self._schema()
        state = {"steps": ["A"], "results": {}, "label": ""}
        assert schema.reduce_all(state, {}) == state
        assert schema.reduce_all(state, None) == state

    def test_reduce_all_missing_field_starts_from_default(self):
        schema = self._schema()
        assert schema.reduce_all({}, {"steps": ["A"]}) == {"steps": ["A"]}

    def test_undeclared_field_rejected(self):
        schema = self._schema()
        with pytest.raises(StateUpdateError, match="unknown_field") as exc_info:
            schema.reduce_all(schema.initial_values(), {"unknown_field": 1})
        assert exc_info.value.fields == ["unknown_field"]
        assert exc_info.value.schema_name == "test"


class TestReductionOrder:
    """Sequential reduction versus one combined partial, and fan-in order."""

    def _schema(self) -> StateSchema:
        return (
            StateSchema("order")
            .declare("steps", list, append_reducer)
            .declare("results", dict, merge_reducer)
        )

    def test_append_sequential_equals_concatenated(self):
        schema = self._schema()
        state = {"steps": ["start"], "results": {}}
        a, b = ["A1", "A2"], ["B1"]

        sequential = schema.reduce_all(schema.reduce_all(state, {"steps": a}), {"steps": b})
        combined = schema.reduce_all(state, {"steps": a + b})
        assert sequential == combined
        assert sequential["steps"] == ["start", "A1", "A2", "B1"]

    def test_disjoint_merge_keys_commute(self):
        schema = self._schema()
        state = {"steps": [], "results": {"input": 1}}
        left = {"results": {"novelty": 80}}
        right = {"results": {"impact": 60}}

        forward = schema.reduce_all(schema.reduce_all(state, left), right)
        backward = schema.reduce_all(schema.reduce_all(state, right), left)
        assert forward == backward
        assert forward["results"] == {"input": 1, "novelty": 80, "impact": 60}

    def test_overlapping_merge_keys_follow_arrival(self):
        schema = self._schema()
        state = schema.initial_values()
        first = {"results": {"score": 1, "first": True}}
        second = {"results": {"score": 2}}

        assert schema.reduce_all(schema.reduce_all(state, first), second)["results"] == {
            "score": 2, "first": True,
        }
        assert schema.reduce_all(schema.reduce_all(state, second), first)["results"] == {
            "score": 1, "first": True,
        }


class TestBuiltinSchemas:
    """Test the four built-in schema variants."""

    def test_all_variants_present(self):
        assert set(BUILTIN_SCHEMAS) == {
            "sequential_research", "concurrent_research", "monetization", DEFAULT_SCHEMA_NAME,
        }

    def test_identity_fields_on_every_schema(self):
        for schema in BUILTIN_SCHEMAS.values():
            for name in ("active_thread_id", "root_id", "user_id", "messages"):
                assert name in schema

    def test_sequential_results_replaced_wholesale(self):
        schema = BUILTIN_SCHEMAS["sequential_research"]
        state = schema.reduce_all(schema.initial_values(), {"analysis_results": {"a": 1}})
        state = schema.reduce_all(state, {"analysis_results": {"b": 2}})
        assert state["analysis_results"] == {"b": 2}

    def test_concurrent_results_merged(self):
        schema = BUILTIN_SCHEMAS["concurrent_research"]
        state = schema.reduce_all(schema.initial_values(), {"analysis_results": {"a": 1}})
        state = schema.reduce_all(state, {"analysis_results": {"b": 2}})
        assert state["analysis_results"] == {"a": 1, "b": 2}

    def test_concurrent_steps_appended(self):
        schema = BUILTIN_SCHEMAS["concurrent_research"]
        state = schema.reduce_all(schema.initial_values(), {"current_steps": ["one"]})
        state = schema.reduce_all(state, {"current_steps": ["two"]})
        assert state["current_steps"] == ["one", "two"]

    def test_monetization_defaults(self):
        values = BUILTIN_SCHEMAS["monetization"].initial_values()
        assert values["original_disclosure"] is None
        assert values["market_analysis"] == {}
        assert values["monetization_agents"] == []

    def test_messages_appended(self):
        schema = BUILTIN_SCHEMAS[DEFAULT_SCHEMA_NAME]
        state = schema.reduce_all(schema.initial_values(), {"messages": [HumanMessage(content="hi")]})
        state = schema.reduce_all(state, {"messages": [AIMessage(content="hello")]})
        assert [m.content for m in state["messages"]] == ["hi", "hello"]

    def test_aliases(self):
        assert canonical_schema_name("ResearchGraphAnnotation") == "sequential_research"
        assert canonical_schema_name("MonetizationGraphAnnotation") == "monetization"
        assert canonical_schema_name("custom") == "custom"


class TestSerde:
    """Test message-aware state encoding."""

    def test_messages_round_trip(self):
        values = {
            "messages": [HumanMessage(content="hi"), AIMessage(content="hello")],
            "analysis_results": {"input_analysis": {"analysis": "x"}},
            "user_id": "u1",
        }
        decoded = decode_state(encode_state(values))
        assert isinstance(decoded["messages"][0], HumanMessage)
        assert isinstance(decoded["messages"][1], AIMessage)
        assert decoded["messages"][1].content == "hello"
        assert decoded["analysis_results"] == values["analysis_results"]
        assert decoded["user_id"] == "u1"

    def test_to_jsonable_renders_messages(self):
        rendered = to_jsonable({"messages": [HumanMessage(content="hi")]})
        assert rendered == {"messages": [{"role": "human", "content": "hi"}]}

    def test_datetimes_round_trip(self):
        stamp = datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)
        values = {"analysis_results": {"checked_at": stamp, "history": [stamp]}}

        encoded = encode_state(values)
        assert encoded["analysis_results"]["checked_at"] == {"__datetime__": stamp.isoformat()}
        decoded = decode_state(encoded)
        assert decoded == values
        assert isinstance(decoded["analysis_results"]["history"][0], datetime)
