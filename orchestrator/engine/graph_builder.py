"""Graph Builder: declarative graph specs, validation and compilation

This module turns a declarative GraphSpec (node names + directed edges over
a named state schema) into an immutable CompiledGraph the executor walks.

Key Components:
- NodeSpec / EdgeSpec / GraphSpec: declarative configuration
- validate_graph_spec: registration-time checks (fail fast)
- compile_graph: adjacency maps, reachability and topological order
- CompiledGraph.ready_nodes: the topological frontier rule

Edges may use the START/END sentinels. A node with several predecessors
(fan-in) becomes runnable only when every predecessor reachable from START
has executed in the current pass.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..errors import InvalidGraphError, UnknownSchemaError, UnresolvedNodeError
from ..state.annotations import canonical_schema_name
from ..state.schema import StateSchema

logger = logging.getLogger(__name__)

START = "__start__"
END = "__end__"
SENTINELS = frozenset({START, END})

# Normalized node callable: (state, ctx) -> partial update | Interrupt | None
NodeCallable = Callable[[Dict[str, Any], Any], Awaitable[Any]]


@dataclass
class NodeSpec:
    """Runtime configuration for a registered node function.

    Attributes:
        name: Node name (key in the node registry)
        config: Untyped settings read at call time (model, temperature,
            timeout, retry)
    """

    name: str
    config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("node name cannot be empty")


@dataclass
class EdgeSpec:
    """Directed edge between two node names (or the START/END sentinels)."""

    start: str
    end: str

    def __post_init__(self):
        if not self.start:
            raise InvalidGraphError("edge start cannot be empty")
        if not self.end:
            raise InvalidGraphError("edge end cannot be empty")
        if self.start == self.end:
            raise InvalidGraphError(f"self-loop detected: {self.start} -> {self.end}")


@dataclass
class GraphSpec:
    """Declarative graph definition.

    Attributes:
        name: Graph name (also the graph type used by the router)
        schema: State schema name (aliases like "ResearchGraphAnnotation" accepted)
        nodes: Ordered node names to include
        edges: Directed edges between nodes and sentinels
        selection_words: Router vocabulary; words starting with the keyword
            marker score higher
    """

    name: str
    schema: str
    nodes: List[str]
    edges: List[EdgeSpec]
    selection_words: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise InvalidGraphError("graph name cannot be empty")
        if not self.nodes:
            raise InvalidGraphError(f"graph '{self.name}' must have at least one node")

        duplicates = {n for n in self.nodes if self.nodes.count(n) > 1}
        if duplicates:
            raise InvalidGraphError(
                f"graph '{self.name}' has duplicate node names: {sorted(duplicates)}"
            )
        reserved = SENTINELS.intersection(self.nodes)
        if reserved:
            raise InvalidGraphError(
                f"graph '{self.name}' uses reserved node names: {sorted(reserved)}"
            )


def validate_graph_spec(
    spec: GraphSpec,
    node_functions: Mapping[str, Any],
    schemas: Mapping[str, StateSchema],
) -> None:
    """Check a spec against the registered nodes and schemas.

    Raises:
        UnknownSchemaError: schema name not registered
        UnresolvedNodeError: node or edge endpoint does not resolve
        InvalidGraphError: sentinel misuse, no entry edge, or a cycle
    """
    if canonical_schema_name(spec.schema) not in schemas:
        raise UnknownSchemaError(spec.name, spec.schema)

    for node_name in spec.nodes:
        if node_name not in node_functions:
            raise UnresolvedNodeError(spec.name, node_name)

    node_set = set(spec.nodes)
    for edge in spec.edges:
        if edge.start == END:
            raise InvalidGraphError(f"graph '{spec.name}': {END} cannot be an edge start")
        if edge.end == START:
            raise InvalidGraphError(f"graph '{spec.name}': {START} cannot be an edge end")
        for endpoint in (edge.start, edge.end):
            if endpoint not in SENTINELS and endpoint not in node_set:
                raise UnresolvedNodeError(spec.name, endpoint)

    if not any(edge.start == START for edge in spec.edges):
        raise InvalidGraphError(f"graph '{spec.name}' has no edge leaving {START}")

    cycle = find_cycle(spec)
    if cycle:
        raise InvalidGraphError(
            f"graph '{spec.name}' contains a cycle: {' → '.join(cycle)}"
        )


def find_cycle(spec: GraphSpec) -> Optional[List[str]]:
    """Return the first cycle found by DFS (last element == first), or None."""
    graph: Dict[str, List[str]] = defaultdict(list)
    for edge in spec.edges:
        if edge.start not in SENTINELS and edge.end not in SENTINELS:
            graph[edge.start].append(edge.end)

    visited: Set[str] = set()
    path: List[str] = []
    path_set: Set[str] = set()

    def dfs(node: str) -> Optional[List[str]]:
        if node in path_set:
            return path[path.index(node):] + [node]
        if node in visited:
            return None

        visited.add(node)
        path.append(node)
        path_set.add(node)

        for neighbor in graph[node]:
            found = dfs(neighbor)
            if found:
                return found

        path.pop()
        path_set.remove(node)
        return None

    for node_name in spec.nodes:
        if node_name not in visited:
            found = dfs(node_name)
            if found:
                return found
    return None


@dataclass(frozen=True)
class CompiledGraph:
    """Immutable executable form of a GraphSpec.

    Only nodes reachable from START take part in execution; ``predecessors``
    lists reachable predecessors only, so an orphan branch never blocks a
    fan-in.
    """

    name: str
    schema: StateSchema
    nodes: Mapping[str, NodeCallable]
    entry_nodes: Tuple[str, ...]
    successors: Mapping[str, Tuple[str, ...]]
    predecessors: Mapping[str, Tuple[str, ...]]
    order: Tuple[str, ...]
    selection_words: Tuple[str, ...] = ()

    def ready_nodes(self, executed: Iterable[str]) -> List[str]:
        """Nodes not yet executed whose predecessors have all executed."""
        done = set(executed)
        return [
            name
            for name in self.order
            if name not in done and all(p in done for p in self.predecessors[name])
        ]

    def __contains__(self, node_name: object) -> bool:
        return node_name in self.nodes


def topological_sort(node_names: List[str], successors: Mapping[str, Iterable[str]]) -> List[str]:
    """Kahn's algorithm; ties keep declaration order."""
    in_degree = {name: 0 for name in node_names}
    for name in node_names:
        for neighbor in successors.get(name, ()):
            if neighbor in in_degree:
                in_degree[neighbor] += 1

    queue = deque([name for name in node_names if in_degree[name] == 0])
    result = []

    while queue:
        node_name = queue.popleft()
        result.append(node_name)

        for neighbor in successors.get(node_name, ()):
            if neighbor not in in_degree:
                continue
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(result) != len(node_names):
        raise InvalidGraphError("graph contains cycles - cannot perform topological sort")
    return result


def compile_graph(
    spec: GraphSpec,
    node_functions: Mapping[str, NodeCallable],
    schema: StateSchema,
) -> CompiledGraph:
    """Build the executable form of an already validated spec."""
    successors: Dict[str, List[str]] = defaultdict(list)
    for edge in spec.edges:
        if edge.end == END:
            continue
        if edge.end not in successors[edge.start]:
            successors[edge.start].append(edge.end)

    entry_nodes = list(successors.get(START, []))

    # Reachability from START
    reachable: Set[str] = set()
    queue = deque(entry_nodes)
    while queue:
        node_name = queue.popleft()
        if node_name in reachable:
            continue
        reachable.add(node_name)
        queue.extend(successors.get(node_name, []))

    ordered = [name for name in spec.nodes if name in reachable]
    unreachable = [name for name in spec.nodes if name not in reachable]
    if unreachable:
        logger.warning(f"Graph '{spec.name}': nodes unreachable from {START}: {unreachable}")

    predecessors: Dict[str, List[str]] = {name: [] for name in ordered}
    for source in ordered:
        for target in successors.get(source, []):
            if target in predecessors and source not in predecessors[target]:
                predecessors[target].append(source)

    order = topological_sort(ordered, successors)

    compiled = CompiledGraph(
        name=spec.name,
        schema=schema,
        nodes=MappingProxyType({name: node_functions[name] for name in ordered}),
        entry_nodes=tuple(entry_nodes),
        successors=MappingProxyType({name: tuple(successors.get(name, [])) for name in ordered}),
        predecessors=MappingProxyType({name: tuple(p) for name, p in predecessors.items()}),
        order=tuple(order),
        selection_words=tuple(spec.selection_words),
    )
    logger.info(
        f"Compiled graph '{spec.name}' ({len(order)} nodes, entry={list(entry_nodes)})"
    )
    return compiled
