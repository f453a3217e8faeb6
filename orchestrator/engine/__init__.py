"""Graph engine: specs, registry/compiler, executor and events."""

from .context import Interrupt, NodeContext, Resume
from .events import CompletionEvent, FailureEvent, InterruptEvent, StepEvent, ThreadSelectedEvent
from .executor import GraphExecutor
from .graph_builder import END, START, CompiledGraph, EdgeSpec, GraphSpec, NodeSpec
from .registry import GraphRegistry
from .retry import RetryPolicy

__all__ = [
    "END",
    "START",
    "CompiledGraph",
    "CompletionEvent",
    "EdgeSpec",
    "FailureEvent",
    "GraphExecutor",
    "GraphRegistry",
    "GraphSpec",
    "Interrupt",
    "InterruptEvent",
    "NodeContext",
    "NodeSpec",
    "Resume",
    "RetryPolicy",
    "StepEvent",
    "ThreadSelectedEvent",
]
