"""Built-in state schemas.

Four variants share the reduce contract:

- sequential_research: one analysis step at a time, results replaced wholesale
- concurrent_research: parallel analyses, results shallow-merged, step log appended
- monetization: market research, business model and pricing strategy
- default: fallback shape, same fields as sequential_research

The TypedDicts document the field types; the StateSchema instances carry the
defaults and reducers the engine uses.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from langchain_core.messages import BaseMessage

from .schema import StateSchema, append_reducer, merge_reducer


class SequentialResearchState(TypedDict, total=False):
    active_thread_id: str
    root_id: str
    user_id: str
    messages: List[BaseMessage]
    current_step: str
    analysis_results: Dict[str, Any]


class ConcurrentResearchState(TypedDict, total=False):
    active_thread_id: str
    root_id: str
    user_id: str
    messages: List[BaseMessage]
    current_steps: List[str]
    analysis_results: Dict[str, Any]


class MonetizationState(TypedDict, total=False):
    active_thread_id: str
    root_id: str
    user_id: str
    messages: List[BaseMessage]
    current_monetization_agent: str
    monetization_agents: List[str]
    original_disclosure: Optional[Dict[str, Any]]
    market_analysis: Dict[str, Any]


def _identity_fields(schema: StateSchema) -> StateSchema:
    return (
        schema
        .declare("active_thread_id", str)
        .declare("root_id", str)
        .declare("user_id", str)
        .declare("messages", list, append_reducer)
    )


def sequential_research_schema(name: str = "sequential_research") -> StateSchema:
    return (
        _identity_fields(StateSchema(name))
        .declare("current_step", str)
        .declare("analysis_results", dict)
    )


def concurrent_research_schema() -> StateSchema:
    return (
        _identity_fields(StateSchema("concurrent_research"))
        .declare("current_steps", list, append_reducer)
        .declare("analysis_results", dict, merge_reducer)
    )


def monetization_schema() -> StateSchema:
    return (
        _identity_fields(StateSchema("monetization"))
        .declare("current_monetization_agent", str)
        .declare("monetization_agents", list)
        .declare("original_disclosure")
        .declare("market_analysis", dict)
    )


DEFAULT_SCHEMA_NAME = "default"

BUILTIN_SCHEMAS: Dict[str, StateSchema] = {
    "sequential_research": sequential_research_schema(),
    "concurrent_research": concurrent_research_schema(),
    "monetization": monetization_schema(),
    DEFAULT_SCHEMA_NAME: sequential_research_schema(DEFAULT_SCHEMA_NAME),
}

# Annotation names accepted in graphs.json files
SCHEMA_ALIASES: Dict[str, str] = {
    "ResearchGraphAnnotation": "sequential_research",
    "ConcurrentResearchGraphAnnotation": "concurrent_research",
    "MonetizationGraphAnnotation": "monetization",
    "DefaultGraphAnnotation": DEFAULT_SCHEMA_NAME,
}


def canonical_schema_name(name: str) -> str:
    return SCHEMA_ALIASES.get(name, name)
