"""Root conftest for engine, repository and API tests.

Provides:
- A small "steps" schema and graph helpers for engine tests
- A zero-latency mock LLM client
- In-memory SQLite engine + session factory for the SQL stores
- An async HTTP client over the FastAPI app
"""

from __future__ import annotations

from typing import AsyncGenerator, Callable, List, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.database import Base

# Import all ORM models so they register with Base.metadata
import app.models.db  # noqa: F401

from orchestrator.checkpoint.memory import InMemoryCheckpointStore
from orchestrator.engine.executor import GraphExecutor
from orchestrator.engine.graph_builder import END, START, EdgeSpec, GraphSpec
from orchestrator.engine.registry import GraphRegistry
from orchestrator.llm.client import MockLLMClient
from orchestrator.service import WorkflowOrchestrator, build_orchestrator
from orchestrator.state.schema import StateSchema, append_reducer, merge_reducer


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def steps_schema(name: str = "steps") -> StateSchema:
    """``steps`` appends, ``results`` merges, ``input`` is last-writer-wins."""
    return (
        StateSchema(name)
        .declare("input", str)
        .declare("steps", list, append_reducer)
        .declare("results", dict, merge_reducer)
    )


def chain_spec(name: str, nodes: List[str], schema: str = "steps", words=()) -> GraphSpec:
    """START -> nodes[0] -> ... -> nodes[-1] -> END."""
    path = [START] + list(nodes) + [END]
    edges = [EdgeSpec(start=a, end=b) for a, b in zip(path, path[1:])]
    return GraphSpec(name=name, schema=schema, nodes=list(nodes), edges=edges,
                     selection_words=list(words))


def spec_from_edges(name: str, nodes: List[str], edges: List[Tuple[str, str]],
                    schema: str = "steps") -> GraphSpec:
    return GraphSpec(
        name=name,
        schema=schema,
        nodes=list(nodes),
        edges=[EdgeSpec(start=a, end=b) for a, b in edges],
    )


def step_node(name: str) -> Callable:
    """A node that appends its own name to ``steps``."""

    def node(state):
        return {"steps": [name]}

    node.__name__ = name
    return node


async def collect(stream) -> list:
    return [event async for event in stream]


@pytest.fixture
def registry() -> GraphRegistry:
    reg = GraphRegistry()
    reg.register_schema(steps_schema())
    return reg


@pytest.fixture
def checkpoint_store() -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore()


@pytest.fixture
def mock_llm() -> MockLLMClient:
    return MockLLMClient(min_delay=0, max_delay=0)


@pytest.fixture
def executor(registry, checkpoint_store, mock_llm) -> GraphExecutor:
    return GraphExecutor(registry, checkpoint_store, llm=mock_llm)


@pytest.fixture
def orchestrator(mock_llm) -> WorkflowOrchestrator:
    """Built-in nodes and graphs.json, in-memory stores, no LLM latency."""
    return build_orchestrator(llm=mock_llm)


# ---------------------------------------------------------------------------
# In-memory async SQLite engine (StaticPool shares one connection)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(orchestrator: WorkflowOrchestrator) -> AsyncGenerator[AsyncClient, None]:
    from app.main import create_app

    app = create_app(orchestrator)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
