"""Workflow orchestrator: one inbound message end to end.

1. summarize the user's threads by graph type
2. score graphs and select one
3. reuse the user's latest thread of that type or mint a new one
4. build the input: initial state for a new thread, ``Resume(message)`` for
   a thread suspended at a gate, otherwise the message appended to state
5. stream the executor's events, preceded by a ThreadSelectedEvent
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from .checkpoint.base import CheckpointStore
from .checkpoint.memory import InMemoryCheckpointStore
from .config import GRAPHS_CONFIG_PATH
from .engine.context import Resume
from .engine.events import ExecutionEvent, ThreadSelectedEvent
from .engine.executor import GraphExecutor
from .engine.loader import apply_graph_config, load_graph_config
from .engine.registry import GraphRegistry
from .llm.client import LLMClient, create_llm_client
from .nodes import register_builtin_nodes
from .routing.scoring import Router, RoutingConfig
from .threads.manager import ThreadLifecycleManager
from .threads.store import InMemoryThreadRepository, ThreadRepository

logger = logging.getLogger(__name__)

HUMAN_KIND = "message.human"


def context_messages(conversation_context: Optional[Mapping[str, Any]]) -> List[BaseMessage]:
    """Prior thread messages from a conversation context as langchain messages."""
    messages: List[BaseMessage] = []
    for item in (conversation_context or {}).get("thread_messages") or []:
        text = item.get("text", "")
        if item.get("kind") == HUMAN_KIND:
            messages.append(HumanMessage(content=text))
        else:
            messages.append(AIMessage(content=text))
    return messages


class WorkflowOrchestrator:
    """Routes messages to graph threads and executes them."""

    def __init__(
        self,
        registry: GraphRegistry,
        executor: GraphExecutor,
        threads: ThreadLifecycleManager,
        router: Optional[Router] = None,
    ):
        self.registry = registry
        self.executor = executor
        self.threads = threads
        self.router = router or Router(registry.list_selection_vocabulary)

    @property
    def checkpoints(self) -> CheckpointStore:
        return self.executor.checkpoints

    def initial_state_for(
        self,
        graph_type: str,
        message: str,
        user_id: str,
        thread_id: str,
        root_id: str,
        conversation_context: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """State input for a thread's first execution.

        Unknown graph types get the default schema's shape.
        """
        schema = self.registry.schema_for_graph(graph_type)
        values: Dict[str, Any] = {
            "messages": context_messages(conversation_context) + [HumanMessage(content=message)],
        }
        ids = {"active_thread_id": thread_id, "root_id": root_id, "user_id": user_id}
        values.update({key: value for key, value in ids.items() if key in schema})
        return values

    async def handle_message(
        self,
        user_id: str,
        message: str,
        conversation_context: Optional[Mapping[str, Any]] = None,
        config: Optional[Dict[str, Any]] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[Union[ThreadSelectedEvent, ExecutionEvent]]:
        summary = await self.threads.summarize_by_graph_type(user_id)
        graph_type = self.router.route(message, summary, user_id=user_id)
        resolved = await self.threads.resolve_thread(user_id, graph_type, summary)

        yield ThreadSelectedEvent(
            graph_type=graph_type,
            thread_id=resolved.thread_id,
            root_id=resolved.root_id,
            new_thread=resolved.new_thread,
        )

        checkpoint = await self.checkpoints.load(resolved.thread_id)
        if checkpoint is None:
            logger.info(f"Starting {graph_type} on new thread {resolved.thread_id}")
            payload: Any = self.initial_state_for(
                graph_type, message, user_id, resolved.thread_id, resolved.root_id,
                conversation_context,
            )
        elif checkpoint.is_suspended:
            logger.info(
                f"Resuming thread {resolved.thread_id} at '{checkpoint.interrupted_node}'"
            )
            payload = Resume(message)
        else:
            logger.info(f"Continuing thread {resolved.thread_id} ({checkpoint.status.value})")
            payload = {"messages": [HumanMessage(content=message)]}

        run_config = {
            "conversation_context": dict(conversation_context or {}),
            "user_id": user_id,
            "thread_id": resolved.thread_id,
            "root_id": resolved.root_id,
            **(config or {}),
        }
        async for event in self.executor.execute(
            graph_type, resolved.thread_id, payload, run_config, cancel_event=cancel_event,
        ):
            yield event


def build_orchestrator(
    graphs_path: Optional[str] = None,
    checkpoints: Optional[CheckpointStore] = None,
    thread_repository: Optional[ThreadRepository] = None,
    llm: Optional[LLMClient] = None,
    routing: Optional[RoutingConfig] = None,
) -> WorkflowOrchestrator:
    """Wire registry, built-in nodes, graphs.json, stores and router.

    In-memory stores are used for any store not supplied.
    """
    registry = GraphRegistry()
    register_builtin_nodes(registry)

    path = graphs_path or GRAPHS_CONFIG_PATH
    try:
        apply_graph_config(registry, load_graph_config(path))
    except FileNotFoundError:
        logger.warning(f"graphs config not found at {path}; no graphs registered")

    executor = GraphExecutor(
        registry,
        checkpoints or InMemoryCheckpointStore(),
        llm=llm or create_llm_client(),
    )
    threads = ThreadLifecycleManager(thread_repository or InMemoryThreadRepository())
    router = Router(registry.list_selection_vocabulary, config=routing)
    return WorkflowOrchestrator(registry, executor, threads, router)
