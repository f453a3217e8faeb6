"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from orchestrator.service import WorkflowOrchestrator


def get_orchestrator(request: Request) -> WorkflowOrchestrator:
    """The orchestrator wired at startup (see ``app.main.lifespan``)."""
    return request.app.state.orchestrator
