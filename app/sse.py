"""SSE helpers for streaming orchestrator events."""

from __future__ import annotations

import json
from typing import Any, Dict

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(data: Dict[str, Any]) -> str:
    """One ``data:`` frame terminated by a blank line."""
    return f"data: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"


def error_frame(error: BaseException) -> str:
    return format_sse({
        "type": "error",
        "error": str(error),
        "error_type": type(error).__name__,
    })
