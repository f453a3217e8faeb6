"""Graph Executor

Walks a compiled graph for one thread, one step at a time:

1. The step's frontier is every node not yet executed in this pass whose
   predecessors have all executed. Several nodes run concurrently (fan-out).
2. After *all* members finish, their partial updates are folded into state
   through the schema reducers, in completion order (fan-in barrier).
3. The checkpoint is saved, then a StepEvent is yielded per finished node.

A node returning ``Interrupt(payload)`` suspends the thread: completed
siblings are applied, the checkpoint is saved as suspended with the payload,
and the stream ends with an InterruptEvent. ``execute(..., Resume(value))``
re-enters the interrupted node with ``ctx.resumed`` set.

A failing node (after its retry policy) applies nothing from its step; the
checkpoint keeps the last good state with status ``failed`` and the stream
ends with a FailureEvent.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Set, Tuple, Union

from ..checkpoint.base import Checkpoint, CheckpointStore, ExecutionStatus
from ..errors import (
    CheckpointConflictError,
    ExecutionCancelledError,
    NodeExecutionError,
    NotFoundError,
    NotResumableError,
    ThreadBusyError,
)
from .context import Interrupt, NodeContext, Resume
from .events import CompletionEvent, ExecutionEvent, FailureEvent, InterruptEvent, StepEvent
from .graph_builder import CompiledGraph
from .registry import GraphRegistry
from .retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

Payload = Union[Mapping[str, Any], Resume, None]


class GraphExecutor:
    """Runs compiled graphs against checkpointed thread state.

    Args:
        registry: Source of compiled graphs and node runtime configs
        checkpoints: Checkpoint store shared by all threads
        llm: Language-model client exposed to nodes through their context
    """

    def __init__(self, registry: GraphRegistry, checkpoints: CheckpointStore, llm: Any = None):
        self.registry = registry
        self.checkpoints = checkpoints
        self.llm = llm
        self._running: Set[str] = set()

    def is_running(self, thread_id: str) -> bool:
        return thread_id in self._running

    async def execute(
        self,
        graph_type: str,
        thread_id: str,
        payload: Payload = None,
        config: Optional[Dict[str, Any]] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[ExecutionEvent]:
        """Advance ``thread_id`` on ``graph_type`` and stream its events.

        Args:
            graph_type: Registered graph name
            thread_id: Checkpoint key
            payload: State input folded in through the reducers, or
                ``Resume(value)`` answering a pending interrupt
            config: Invocation config passed to nodes as ``ctx.run_config``
            cancel_event: Checked before every step; when set the run fails
                with ExecutionCancelledError and stays resumable

        Raises:
            ThreadBusyError: another invocation is running on the thread
            NotFoundError: unknown graph, or the thread belongs to another graph
            NotResumableError: ``Resume`` on a thread that is not suspended
            StateUpdateError: the input names an undeclared field
        """
        if thread_id in self._running:
            raise ThreadBusyError(thread_id)
        self._running.add(thread_id)
        try:
            async for event in self._execute(graph_type, thread_id, payload, config, cancel_event):
                yield event
        finally:
            self._running.discard(thread_id)

    async def _execute(
        self,
        graph_type: str,
        thread_id: str,
        payload: Payload,
        config: Optional[Dict[str, Any]],
        cancel_event: Optional[asyncio.Event],
    ) -> AsyncIterator[ExecutionEvent]:
        graph = self.registry.get_compiled(graph_type)
        checkpoint, resume = await self._prepare(graph, thread_id, payload)
        run_config = dict(config or {})

        logger.info(
            f"Executing graph '{graph.name}' on thread {thread_id} "
            f"(step={checkpoint.step}, frontier={checkpoint.frontier}, resume={resume is not None})"
        )

        try:
            while True:
                if not checkpoint.frontier:
                    checkpoint.status = ExecutionStatus.COMPLETED
                    checkpoint = await self.checkpoints.save(checkpoint)
                    logger.info(f"Graph '{graph.name}' completed on thread {thread_id}")
                    yield CompletionEvent(state=checkpoint.values, thread_id=thread_id)
                    return

                if cancel_event is not None and cancel_event.is_set():
                    error = ExecutionCancelledError(f"Execution cancelled on thread {thread_id}")
                    checkpoint.status = ExecutionStatus.READY
                    checkpoint.error = str(error)
                    checkpoint = await self.checkpoints.save(checkpoint)
                    logger.warning(str(error))
                    yield FailureEvent(
                        error=str(error), error_type=type(error).__name__, thread_id=thread_id,
                    )
                    return

                step = checkpoint.step + 1
                frontier = list(checkpoint.frontier)
                outcomes, completion_order = await self._run_step(
                    graph, checkpoint, frontier, resume, run_config,
                )
                resume = None

                failed = [(name, outcomes[name]) for name in frontier if isinstance(outcomes[name], BaseException)]
                applied: List[Tuple[str, Dict[str, Any]]] = []
                values = checkpoint.values
                if not failed:
                    try:
                        for name in completion_order:
                            outcome = outcomes[name]
                            if isinstance(outcome, Interrupt):
                                continue
                            values = graph.schema.reduce_all(values, outcome)
                            applied.append((name, outcome))
                    except Exception as e:
                        failed = [(name, e)]

                if failed:
                    node_name, error = failed[0]
                    checkpoint.status = ExecutionStatus.FAILED
                    checkpoint.error = f"{type(error).__name__}: {error}"
                    checkpoint = await self.checkpoints.save(checkpoint)
                    logger.error(f"Node '{node_name}' failed on thread {thread_id}: {error}")
                    yield FailureEvent(
                        error=str(error),
                        error_type=type(error).__name__,
                        node=node_name,
                        thread_id=thread_id,
                    )
                    return

                executed = checkpoint.executed + [name for name, _ in applied]
                interrupted = [name for name in frontier if isinstance(outcomes[name], Interrupt)]

                checkpoint.values = values
                checkpoint.executed = executed
                checkpoint.step = step
                checkpoint.frontier = graph.ready_nodes(executed)
                checkpoint.error = None
                if interrupted:
                    first = interrupted[0]
                    checkpoint.status = ExecutionStatus.SUSPENDED
                    checkpoint.pending_interrupt = outcomes[first].payload
                    checkpoint.interrupted_node = first
                else:
                    checkpoint.status = ExecutionStatus.READY
                    checkpoint.pending_interrupt = None
                    checkpoint.interrupted_node = None
                checkpoint = await self.checkpoints.save(checkpoint)

                for name, update in applied:
                    yield StepEvent(node=name, update=update, step=step, thread_id=thread_id)

                if interrupted:
                    logger.info(
                        f"Graph '{graph.name}' suspended at '{checkpoint.interrupted_node}' "
                        f"on thread {thread_id}"
                    )
                    yield InterruptEvent(
                        node=checkpoint.interrupted_node,
                        payload=checkpoint.pending_interrupt,
                        thread_id=thread_id,
                    )
                    return

        except CheckpointConflictError as e:
            logger.error(f"Checkpoint conflict on thread {thread_id}: {e}")
            yield FailureEvent(error=str(e), error_type=type(e).__name__, thread_id=thread_id)

    async def _prepare(
        self,
        graph: CompiledGraph,
        thread_id: str,
        payload: Payload,
    ) -> Tuple[Checkpoint, Optional[Resume]]:
        """Load or create the thread's checkpoint and fold in the input."""
        existing = await self.checkpoints.load(thread_id)
        if existing is not None and existing.graph_type != graph.name:
            raise NotFoundError(
                f"Thread '{thread_id}' belongs to graph '{existing.graph_type}', not '{graph.name}'"
            )

        if isinstance(payload, Resume):
            if existing is None or not existing.is_suspended:
                status = existing.status.value if existing is not None else "new"
                raise NotResumableError(f"Thread '{thread_id}' is not suspended (status={status})")
            return existing, payload

        schema = graph.schema
        updates = dict(payload or {})

        if existing is None:
            checkpoint = Checkpoint(
                thread_id=thread_id,
                graph_type=graph.name,
                values=schema.reduce_all(schema.initial_values(), updates),
                frontier=graph.ready_nodes([]),
            )
        else:
            checkpoint = existing
            checkpoint.values = schema.reduce_all(checkpoint.values, updates)
            if checkpoint.status == ExecutionStatus.COMPLETED:
                # New pass over the graph with the accumulated state
                checkpoint.executed = []
            else:
                checkpoint.executed = [name for name in checkpoint.executed if name in graph]
            checkpoint.frontier = graph.ready_nodes(checkpoint.executed)
            checkpoint.status = ExecutionStatus.READY
            checkpoint.pending_interrupt = None
            checkpoint.interrupted_node = None
            checkpoint.error = None

        checkpoint = await self.checkpoints.save(checkpoint)
        return checkpoint, None

    async def _run_step(
        self,
        graph: CompiledGraph,
        checkpoint: Checkpoint,
        frontier: List[str],
        resume: Optional[Resume],
        run_config: Dict[str, Any],
    ) -> Tuple[Dict[str, Any], List[str]]:
        """Run every frontier node concurrently; wait for all of them."""
        completion_order: List[str] = []

        async def run_member(name: str) -> Any:
            resumed = resume is not None and name == checkpoint.interrupted_node
            outcome = await self._run_node(
                graph, name, checkpoint, run_config,
                resumed=resumed,
                resume_value=resume.value if resumed else None,
            )
            completion_order.append(name)
            return outcome

        if len(frontier) > 1:
            logger.info(f"Fan-out on thread {checkpoint.thread_id}: {frontier}")

        results = await asyncio.gather(
            *(run_member(name) for name in frontier), return_exceptions=True,
        )
        return dict(zip(frontier, results)), completion_order

    async def _run_node(
        self,
        graph: CompiledGraph,
        name: str,
        checkpoint: Checkpoint,
        run_config: Dict[str, Any],
        resumed: bool = False,
        resume_value: Any = None,
    ) -> Union[Dict[str, Any], Interrupt]:
        node = graph.nodes[name]
        node_config = self.registry.get_node_config(name)
        try:
            policy = RetryPolicy.from_config(node_config)
        except ValueError as e:
            raise NodeExecutionError(name, e, attempts=0) from e

        async def attempt(number: int) -> Any:
            ctx = NodeContext(
                node_name=name,
                graph_name=graph.name,
                thread_id=checkpoint.thread_id,
                config=node_config,
                run_config=run_config,
                llm=self.llm,
                resumed=resumed,
                resume_value=resume_value,
                attempt=number,
            )
            return await node(copy.deepcopy(checkpoint.values), ctx)

        logger.info(f"Running node '{name}' on thread {checkpoint.thread_id}")
        result = await call_with_retry(attempt, policy, name)

        if result is None:
            return {}
        if isinstance(result, Interrupt):
            return result
        if not isinstance(result, Mapping):
            raise NodeExecutionError(
                name, TypeError(f"node returned {type(result).__name__}, expected a mapping"),
            )
        graph.schema.validate_update(result)
        return dict(result)
