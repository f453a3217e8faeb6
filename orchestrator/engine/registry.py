"""Graph Registry

Holds named node functions, their runtime configs, state schemas and graph
specs. Graphs are validated when registered and compiled lazily on first
use; re-registering a graph drops its cached compiled form.

Node functions take ``(state)`` or ``(state, ctx)``, may be sync or async,
and return a partial update mapping, ``None`` or an ``Interrupt``.
"""

from __future__ import annotations

import copy
import inspect
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..errors import NotFoundError
from ..state.annotations import BUILTIN_SCHEMAS, DEFAULT_SCHEMA_NAME, canonical_schema_name
from ..state.schema import StateSchema
from .graph_builder import (
    CompiledGraph,
    GraphSpec,
    NodeCallable,
    NodeSpec,
    compile_graph,
    validate_graph_spec,
)
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


def _positional_arity(fn: Callable[..., Any]) -> int:
    params = inspect.signature(fn).parameters.values()
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return 2
    return sum(
        1 for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    )


def normalize_node(name: str, fn: Callable[..., Any]) -> NodeCallable:
    """Wrap ``fn`` so the executor can always ``await call(state, ctx)``."""
    if not callable(fn):
        raise TypeError(f"node '{name}' must be callable")

    arity = _positional_arity(fn)
    if arity not in (1, 2):
        raise TypeError(
            f"node '{name}' must accept (state) or (state, ctx), got {arity} positional parameters"
        )

    async def call(state: Dict[str, Any], ctx: Any) -> Any:
        result = fn(state, ctx) if arity == 2 else fn(state)
        if inspect.isawaitable(result):
            result = await result
        return result

    call.__name__ = getattr(fn, "__name__", name)
    call.__wrapped__ = fn  # type: ignore[attr-defined]
    return call


class GraphRegistry:
    """Owned store of nodes, schemas and graphs for one orchestrator."""

    def __init__(self, schemas: Optional[Mapping[str, StateSchema]] = None):
        self._node_functions: Dict[str, NodeCallable] = {}
        self._node_specs: Dict[str, NodeSpec] = {}
        self._schemas: Dict[str, StateSchema] = dict(BUILTIN_SCHEMAS if schemas is None else schemas)
        self._specs: Dict[str, GraphSpec] = {}
        self._compiled: Dict[str, CompiledGraph] = {}

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def register_node(
        self,
        name: str,
        fn: Callable[..., Any],
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Bind ``fn`` under ``name``.

        Replacing an existing node does not touch compiled graphs; they keep
        the previous callable until recompiled.

        Raises:
            ValueError: ``config`` carries an invalid retry/timeout policy
        """
        if not name:
            raise ValueError("node name cannot be empty")
        if config is not None or name not in self._node_specs:
            spec = NodeSpec(name=name, config=dict(config or {}))
            RetryPolicy.from_config(spec.config)
            self._node_specs[name] = spec
        replaced = name in self._node_functions
        self._node_functions[name] = normalize_node(name, fn)
        logger.info(f"{'Replaced' if replaced else 'Registered'} node function: {name}")

    def has_node(self, name: str) -> bool:
        return name in self._node_functions

    def node_names(self) -> List[str]:
        return list(self._node_functions)

    def add_or_update_node_config(self, node_name: str, config: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``config`` into the node's runtime config.

        Takes effect on the node's next call; graph shape is untouched.

        Raises:
            NotFoundError: no node function registered under ``node_name``
            ValueError: the merged config carries an invalid retry/timeout
                policy; the stored config is left unchanged
        """
        if node_name not in self._node_functions:
            raise NotFoundError(f"Node '{node_name}' is not registered")
        merged = {**self._node_specs[node_name].config, **dict(config)}
        RetryPolicy.from_config(merged)
        self._node_specs[node_name] = NodeSpec(name=node_name, config=merged)
        logger.info(f"Updated config for node '{node_name}': {sorted(config)}")
        return copy.deepcopy(merged)

    def configure_node(self, spec: NodeSpec) -> Dict[str, Any]:
        """Apply a ``NodeSpec`` read from a graph config file."""
        return self.add_or_update_node_config(spec.name, spec.config)

    def get_node_spec(self, node_name: str) -> NodeSpec:
        if node_name not in self._node_functions:
            raise NotFoundError(f"Node '{node_name}' is not registered")
        return copy.deepcopy(self._node_specs[node_name])

    def get_node_config(self, node_name: str) -> Dict[str, Any]:
        return self.get_node_spec(node_name).config

    # ------------------------------------------------------------------
    # Schemas
    # ------------------------------------------------------------------

    def register_schema(self, schema: StateSchema, name: Optional[str] = None) -> None:
        self._schemas[name or schema.name] = schema

    def get_schema(self, name: str) -> StateSchema:
        schema = self._schemas.get(canonical_schema_name(name))
        if schema is None:
            raise NotFoundError(f"State schema '{name}' is not registered")
        return schema

    def schema_for_graph(self, graph_name: str) -> StateSchema:
        """Schema of a registered graph, or the default schema for unknown names."""
        spec = self._specs.get(graph_name)
        if spec is None:
            logger.warning(f"Unknown graph type '{graph_name}', falling back to default state")
            return self._schemas[DEFAULT_SCHEMA_NAME]
        return self.get_schema(spec.schema)

    # ------------------------------------------------------------------
    # Graphs
    # ------------------------------------------------------------------

    def register_graph(self, spec: GraphSpec) -> None:
        """Validate and store ``spec``; invalidates any compiled graph of that name.

        Raises:
            RegistrationError: the spec does not resolve; the previous
                registration under this name (if any) is left in place
        """
        validate_graph_spec(spec, self._node_functions, self._schemas)
        replaced = spec.name in self._specs
        self._specs[spec.name] = spec
        self._compiled.pop(spec.name, None)
        logger.info(
            f"{'Re-registered' if replaced else 'Registered'} graph '{spec.name}' "
            f"({len(spec.nodes)} nodes, {len(spec.edges)} edges, schema={spec.schema})"
        )

    def has_graph(self, name: str) -> bool:
        return name in self._specs

    def graph_names(self) -> List[str]:
        return list(self._specs)

    def get_spec(self, name: str) -> GraphSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise NotFoundError(f"Graph '{name}' is not registered")
        return spec

    def get_compiled(self, name: str) -> CompiledGraph:
        """Cached compiled graph, compiling on first use.

        Raises:
            NotFoundError: no spec was ever registered under ``name``
        """
        compiled = self._compiled.get(name)
        if compiled is not None:
            return compiled

        spec = self.get_spec(name)
        compiled = compile_graph(spec, self._node_functions, self.get_schema(spec.schema))
        self._compiled[name] = compiled
        return compiled

    def is_compiled(self, name: str) -> bool:
        return name in self._compiled

    def list_selection_vocabulary(self) -> Dict[str, List[str]]:
        """Graph name -> selection words, in registration order."""
        return {name: list(spec.selection_words) for name, spec in self._specs.items()}
