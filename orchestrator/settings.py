"""Orchestrator runtime settings: tunable parameters for routing and execution.

All values read from environment variables with the documented defaults.
Import from here instead of hardcoding.

Infrastructure config (API host, database URL, LLM endpoint) stays
in orchestrator/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


# =====================================================================
# Routing (graph selection per inbound message)
# =====================================================================

# Points per selection word found in the message
ROUTING_POINTS_FOR_WORD_MATCH = _int("ROUTING_POINTS_FOR_WORD_MATCH", 1)

# Points per marked keyword (e.g. "@research") found in the message
ROUTING_POINTS_FOR_KEYWORD_MATCH = _int("ROUTING_POINTS_FOR_KEYWORD_MATCH", 10)

# Points per existing thread of the graph type
ROUTING_POINTS_FOR_THREAD = _int("ROUTING_POINTS_FOR_THREAD", 1)

# Points when the graph type's latest thread was touched within the window
ROUTING_POINTS_FOR_RECENT = _int("ROUTING_POINTS_FOR_RECENT", 5)
ROUTING_RECENCY_WINDOW_SECONDS = _float("ROUTING_RECENCY_WINDOW_SECONDS", 300.0)

# Prefix that turns a selection word into a high-weight keyword
ROUTING_KEYWORD_MARKER = _str("ROUTING_KEYWORD_MARKER", "@")


# =====================================================================
# Node execution
# =====================================================================

# Defaults applied when a node's runtime config does not set them
NODE_DEFAULT_MODEL = _str("NODE_DEFAULT_MODEL", "gpt-4")
NODE_DEFAULT_TEMPERATURE = _float("NODE_DEFAULT_TEMPERATURE", 0.7)

# Per-attempt timeout in seconds; 0 disables the timeout
NODE_DEFAULT_TIMEOUT = _float("NODE_DEFAULT_TIMEOUT", 0.0)

# Retry policy defaults (1 attempt = no retry)
NODE_RETRY_MAX_ATTEMPTS = _int("NODE_RETRY_MAX_ATTEMPTS", 1)
NODE_RETRY_BACKOFF_SECONDS = _float("NODE_RETRY_BACKOFF_SECONDS", 1.0)
NODE_RETRY_BACKOFF_MULTIPLIER = _float("NODE_RETRY_BACKOFF_MULTIPLIER", 2.0)
NODE_RETRY_JITTER = _float("NODE_RETRY_JITTER", 0.25)


# =====================================================================
# LLM clients
# =====================================================================

# Simulated latency of the mock client (seconds)
MOCK_LLM_MIN_DELAY = _float("MOCK_LLM_MIN_DELAY", 0.5)
MOCK_LLM_MAX_DELAY = _float("MOCK_LLM_MAX_DELAY", 1.5)

LLM_HTTP_TIMEOUT = _float("LLM_HTTP_TIMEOUT", 60.0)
LLM_HTTP_MAX_CONNECTIONS = _int("LLM_HTTP_MAX_CONNECTIONS", 10)
LLM_HTTP_MAX_KEEPALIVE = _int("LLM_HTTP_MAX_KEEPALIVE", 5)
