"""Message execution (SSE) and thread/checkpoint inspection endpoints."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from orchestrator.errors import OrchestratorError
from orchestrator.logging_config import get_api_logger
from orchestrator.service import WorkflowOrchestrator

from ..dependencies import get_orchestrator
from ..models.schemas import ExecuteRequest, GraphHistoryResponse
from ..sse import SSE_HEADERS, error_frame, format_sse

logger = get_api_logger()

router = APIRouter(tags=["execution"])


async def _event_stream(
    request: Request,
    orchestrator: WorkflowOrchestrator,
    payload: ExecuteRequest,
) -> AsyncIterator[str]:
    cancel_event = asyncio.Event()
    context = payload.conversation_context.to_context() if payload.conversation_context else None
    try:
        async for event in orchestrator.handle_message(
            payload.user_id,
            payload.message,
            conversation_context=context,
            config=payload.config,
            cancel_event=cancel_event,
        ):
            yield format_sse(event.to_dict())
            if await request.is_disconnected():
                logger.info(f"Client disconnected, cancelling run for user {payload.user_id}")
                cancel_event.set()
    except OrchestratorError as e:
        logger.warning(f"Execution rejected for user {payload.user_id}: {e}")
        yield error_frame(e)


@router.post("/execute")
async def execute(
    payload: ExecuteRequest,
    request: Request,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
):
    """Route a message to a graph thread and stream its events as SSE."""
    logger.info(f"Execute request from user {payload.user_id}")
    return StreamingResponse(
        _event_stream(request, orchestrator, payload),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/threads/{user_id}", response_model=dict[str, GraphHistoryResponse])
async def list_threads(
    user_id: str,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
):
    """The user's threads summarized by graph type."""
    summary = await orchestrator.threads.summarize_by_graph_type(user_id)
    return {
        graph_type: GraphHistoryResponse(
            count=history.count,
            last_updated_at=history.last_updated_at.isoformat(),
            thread_id=history.thread_id,
            root_id=history.root_id,
        )
        for graph_type, history in summary.items()
    }


@router.get("/checkpoints/{thread_id}")
async def get_checkpoint(
    thread_id: str,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
):
    """Latest checkpoint of a thread."""
    checkpoint = await orchestrator.checkpoints.load(thread_id)
    if checkpoint is None:
        raise HTTPException(status_code=404, detail=f"No checkpoint for thread '{thread_id}'")
    return checkpoint.to_dict()
