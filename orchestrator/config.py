"""Orchestrator configuration constants: single source of truth for all env vars."""

import os
from pathlib import Path

# Server binding: used by entrypoint / uvicorn
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Persistence: "memory" keeps checkpoints/threads in process, "sql" uses DATABASE_URL
STORE_BACKEND = os.getenv("STORE_BACKEND", "sql").lower()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./orchestrator.db")

# Graph definitions loaded at startup
GRAPHS_CONFIG_PATH = os.getenv(
    "GRAPHS_CONFIG_PATH", str(Path(__file__).parent / "graphs.json")
)

# Language model: "mock" (canned responses) or "openai" (any OpenAI-compatible endpoint)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "mock").lower()
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.openai.com/v1")
LLM_API_KEY = os.getenv("LLM_API_KEY", "")
