"""Graph registration and node configuration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from orchestrator.errors import NotFoundError, RegistrationError
from orchestrator.logging_config import get_api_logger
from orchestrator.service import WorkflowOrchestrator

from ..dependencies import get_orchestrator
from ..models.schemas import AddGraphRequest, UpdateNodeRequest

logger = get_api_logger()

router = APIRouter(tags=["graphs"])


@router.post("/add-graph", status_code=201)
async def add_graph(
    payload: AddGraphRequest,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
):
    """Register (or replace) a graph; it is compiled on first use."""
    try:
        orchestrator.registry.register_graph(payload.to_spec())
    except RegistrationError as e:
        logger.warning(f"Rejected graph '{payload.name}': {e}")
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(f"Graph '{payload.name}' registered via API")
    return {"status": "ok", "name": payload.name}


@router.post("/update-node")
async def update_node(
    payload: UpdateNodeRequest,
    orchestrator: WorkflowOrchestrator = Depends(get_orchestrator),
):
    """Merge model/temperature (and extra keys) into a node's runtime config."""
    try:
        config = orchestrator.registry.add_or_update_node_config(
            payload.step_name, payload.config_update(),
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        logger.warning(f"Rejected config for node '{payload.step_name}': {e}")
        raise HTTPException(status_code=422, detail=str(e))

    return {"status": "ok", "stepName": payload.step_name, "config": config}


@router.get("/graphs")
async def list_graphs(orchestrator: WorkflowOrchestrator = Depends(get_orchestrator)):
    """Selection vocabulary per registered graph, in registration order."""
    return orchestrator.registry.list_selection_vocabulary()
