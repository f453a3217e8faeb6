"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, and includes all route modules.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orchestrator.config import API_HOST, API_PORT, STORE_BACKEND
from orchestrator.logging_config import get_engine_logger, get_routing_logger
from orchestrator.service import WorkflowOrchestrator, build_orchestrator

from .database import async_session_factory, close_db, init_db
from .repositories import SqlCheckpointStore, SqlThreadRepository

logger = logging.getLogger("app")


async def _build_default_orchestrator() -> WorkflowOrchestrator:
    if STORE_BACKEND == "sql":
        await init_db()
        logger.info("Using SQL thread and checkpoint stores")
        return build_orchestrator(
            checkpoints=SqlCheckpointStore(async_session_factory),
            thread_repository=SqlThreadRepository(async_session_factory),
        )
    logger.info("Using in-memory thread and checkpoint stores")
    return build_orchestrator()


def create_app(orchestrator: Optional[WorkflowOrchestrator] = None) -> FastAPI:
    """Build the app; a supplied orchestrator bypasses store wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        get_engine_logger()
        get_routing_logger()

        owned = orchestrator is None
        app.state.orchestrator = orchestrator or await _build_default_orchestrator()
        logger.info(
            f"Orchestrator ready with graphs: {app.state.orchestrator.registry.graph_names()}"
        )
        yield

        if owned:
            close = getattr(app.state.orchestrator.executor.llm, "close", None)
            if close is not None:
                await close()
            if STORE_BACKEND == "sql":
                await close_db()

    app = FastAPI(title="Graph Orchestrator API", version="0.1.0", lifespan=lifespan)
    if orchestrator is not None:
        app.state.orchestrator = orchestrator

    # CORS configuration: configurable via CORS_ORIGINS env var (comma-separated)
    _default_origins = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origins = [
        o.strip() for o in os.getenv("CORS_ORIGINS", _default_origins).split(",") if o.strip()
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routes.execution import router as execution_router
    from .routes.graphs import router as graphs_router

    app.include_router(execution_router)
    app.include_router(graphs_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host=API_HOST, port=API_PORT)
