"""graphs.json loading.

File format (camelCase field names, as existing clients write them):

    {
      "nodes":  [{"name": "inputAnalysisNode", "model": "gpt-4", "temperature": 0.7}],
      "graphs": [{"name": "researchGraph",
                  "annotationType": "ResearchGraphAnnotation",
                  "nodes": ["inputAnalysisNode", ...],
                  "edges": [{"start": "__start__", "end": "inputAnalysisNode"}, ...],
                  "selectionWords": ["research", "@research"]}]
    }

``apply_graph_config`` registers what it can: unknown nodes, invalid node
configs and graphs that fail validation are logged and skipped so the rest
stay usable.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..errors import RegistrationError
from .graph_builder import EdgeSpec, GraphSpec, NodeSpec
from .registry import GraphRegistry

logger = logging.getLogger(__name__)


class NodeConfigEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)

    def runtime_config(self) -> Dict[str, Any]:
        """model/temperature plus any extra keys (timeout, retry, ...)."""
        data = self.model_dump(exclude={"name"}, exclude_none=True)
        return data

    def to_spec(self) -> NodeSpec:
        return NodeSpec(name=self.name, config=self.runtime_config())


class EdgeEntry(BaseModel):
    start: str = Field(..., min_length=1)
    end: str = Field(..., min_length=1)


class GraphEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    annotation_type: str = Field(..., alias="annotationType", min_length=1)
    nodes: List[str] = Field(default_factory=list)
    edges: List[EdgeEntry] = Field(default_factory=list)
    selection_words: List[str] = Field(default_factory=list, alias="selectionWords")

    def to_spec(self) -> GraphSpec:
        return GraphSpec(
            name=self.name,
            schema=self.annotation_type,
            nodes=list(self.nodes),
            edges=[EdgeSpec(start=e.start, end=e.end) for e in self.edges],
            selection_words=list(self.selection_words),
        )


class GraphConfig(BaseModel):
    nodes: List[NodeConfigEntry] = Field(default_factory=list)
    graphs: List[GraphEntry] = Field(default_factory=list)


def load_graph_config(path: Union[str, Path]) -> GraphConfig:
    """Parse and validate a graphs.json file.

    Raises:
        FileNotFoundError: path does not exist
        pydantic.ValidationError / json.JSONDecodeError: malformed file
    """
    raw = Path(path).read_text(encoding="utf-8")
    return GraphConfig.model_validate(json.loads(raw))


def apply_graph_config(registry: GraphRegistry, config: GraphConfig) -> List[str]:
    """Set node configs and register graphs; returns the registered graph names."""
    for entry in config.nodes:
        if not registry.has_node(entry.name):
            logger.warning(f"graphs.json: no node function named '{entry.name}', skipping config")
            continue
        try:
            registry.configure_node(entry.to_spec())
        except ValueError as e:
            logger.error(f"graphs.json: invalid config for node '{entry.name}': {e}")

    registered = []
    for graph in config.graphs:
        try:
            registry.register_graph(graph.to_spec())
        except RegistrationError as e:
            logger.error(f"Failed to register graph '{graph.name}': {e}")
            continue
        registered.append(graph.name)

    logger.info(f"Registered graphs from config: {registered}")
    return registered
