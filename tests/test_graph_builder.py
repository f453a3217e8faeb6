"""Unit tests for the Graph Builder

Tests cover:
- EdgeSpec / GraphSpec construction checks
- Registration-time validation (schema, node resolution, sentinels, cycles)
- Compilation: reachability, predecessors, topological frontier
"""

import pytest

from orchestrator.engine.graph_builder import (
    END,
    START,
    EdgeSpec,
    GraphSpec,
    NodeSpec,
    compile_graph,
    find_cycle,
    topological_sort,
    validate_graph_spec,
)
from orchestrator.errors import InvalidGraphError, UnknownSchemaError, UnresolvedNodeError

from tests.conftest import chain_spec, spec_from_edges, steps_schema

SCHEMAS = {"steps": steps_schema()}


async def _noop(state, ctx):
    return {}


def _functions(*names):
    return {name: _noop for name in names}


class TestSpecs:

    def test_node_spec_empty_name(self):
        with pytest.raises(ValueError, match="node name cannot be empty"):
            NodeSpec(name="")

    def test_edge_self_loop(self):
        with pytest.raises(InvalidGraphError, match="self-loop detected"):
            EdgeSpec(start="A", end="A")

    def test_edge_empty_endpoint(self):
        with pytest.raises(InvalidGraphError, match="edge start cannot be empty"):
            EdgeSpec(start="", end="A")

    def test_graph_requires_nodes(self):
        with pytest.raises(InvalidGraphError, match="at least one node"):
            GraphSpec(name="g", schema="steps", nodes=[], edges=[])

    def test_graph_duplicate_nodes(self):
        with pytest.raises(InvalidGraphError, match="duplicate node names"):
            GraphSpec(name="g", schema="steps", nodes=["A", "A"], edges=[])

    def test_graph_reserved_node_name(self):
        with pytest.raises(InvalidGraphError, match="reserved node names"):
            GraphSpec(name="g", schema="steps", nodes=[START], edges=[])


class TestValidation:

    def test_valid_chain(self):
        validate_graph_spec(chain_spec("g", ["A", "B"]), _functions("A", "B"), SCHEMAS)

    def test_unknown_schema(self):
        spec = chain_spec("g", ["A"], schema="nope")
        with pytest.raises(UnknownSchemaError) as exc_info:
            validate_graph_spec(spec, _functions("A"), SCHEMAS)
        assert exc_info.value.schema_name == "nope"

    def test_unregistered_node(self):
        spec = chain_spec("g", ["A", "Missing"])
        with pytest.raises(UnresolvedNodeError) as exc_info:
            validate_graph_spec(spec, _functions("A"), SCHEMAS)
        assert exc_info.value.node_name == "Missing"

    def test_edge_to_undeclared_node(self):
        spec = spec_from_edges("g", ["A"], [(START, "A"), ("A", "Ghost")])
        with pytest.raises(UnresolvedNodeError, match="Ghost"):
            validate_graph_spec(spec, _functions("A", "Ghost"), SCHEMAS)

    def test_end_as_edge_start(self):
        spec = spec_from_edges("g", ["A"], [(START, "A"), (END, "A")])
        with pytest.raises(InvalidGraphError, match="cannot be an edge start"):
            validate_graph_spec(spec, _functions("A"), SCHEMAS)

    def test_start_as_edge_end(self):
        spec = spec_from_edges("g", ["A"], [(START, "A"), ("A", START)])
        with pytest.raises(InvalidGraphError, match="cannot be an edge end"):
            validate_graph_spec(spec, _functions("A"), SCHEMAS)

    def test_no_entry_edge(self):
        spec = spec_from_edges("g", ["A", "B"], [("A", "B"), ("B", END)])
        with pytest.raises(InvalidGraphError, match="no edge leaving"):
            validate_graph_spec(spec, _functions("A", "B"), SCHEMAS)

    def test_cycle_rejected(self):
        spec = spec_from_edges(
            "g", ["A", "B", "C"],
            [(START, "A"), ("A", "B"), ("B", "C"), ("C", "A")],
        )
        with pytest.raises(InvalidGraphError, match="contains a cycle"):
            validate_graph_spec(spec, _functions("A", "B", "C"), SCHEMAS)

    def test_find_cycle_path(self):
        spec = spec_from_edges("g", ["A", "B"], [(START, "A"), ("A", "B"), ("B", "A")])
        assert find_cycle(spec) == ["A", "B", "A"]

    def test_find_cycle_none_for_diamond(self):
        spec = spec_from_edges(
            "g", ["A", "B", "C", "D"],
            [(START, "A"), ("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")],
        )
        assert find_cycle(spec) is None


class TestTopologicalSort:

    def test_chain_order(self):
        assert topological_sort(["A", "B", "C"], {"A": ["B"], "B": ["C"]}) == ["A", "B", "C"]

    def test_ties_keep_declaration_order(self):
        order = topological_sort(["A", "C", "B", "D"], {"A": ["C", "B"], "B": ["D"], "C": ["D"]})
        assert order == ["A", "C", "B", "D"]

    def test_cycle_raises(self):
        with pytest.raises(InvalidGraphError, match="cycles"):
            topological_sort(["A", "B"], {"A": ["B"], "B": ["A"]})


class TestCompile:

    def _diamond(self):
        spec = spec_from_edges(
            "diamond", ["A", "B", "C", "D"],
            [(START, "A"), ("A", "B"), ("A", "C"), ("B", "D"), ("C", "D"), ("D", END)],
        )
        return compile_graph(spec, _functions("A", "B", "C", "D"), steps_schema())

    def test_entry_and_predecessors(self):
        graph = self._diamond()
        assert graph.entry_nodes == ("A",)
        assert graph.predecessors["D"] == ("B", "C")
        assert graph.successors["A"] == ("B", "C")

    def test_ready_nodes_frontier(self):
        graph = self._diamond()
        assert graph.ready_nodes([]) == ["A"]
        assert graph.ready_nodes(["A"]) == ["B", "C"]
        # Fan-in waits for every predecessor
        assert graph.ready_nodes(["A", "B"]) == ["C"]
        assert graph.ready_nodes(["A", "B", "C"]) == ["D"]
        assert graph.ready_nodes(["A", "B", "C", "D"]) == []

    def test_unreachable_nodes_excluded(self):
        spec = spec_from_edges(
            "g", ["A", "Orphan", "B"],
            [(START, "A"), ("A", "B"), ("Orphan", "B"), ("B", END)],
        )
        graph = compile_graph(spec, _functions("A", "Orphan", "B"), steps_schema())
        assert "Orphan" not in graph
        assert graph.predecessors["B"] == ("A",)
        assert graph.ready_nodes(["A"]) == ["B"]

    def test_compiled_graph_is_frozen(self):
        graph = self._diamond()
        with pytest.raises(Exception):
            graph.name = "other"
        with pytest.raises(TypeError):
            graph.nodes["E"] = _noop
