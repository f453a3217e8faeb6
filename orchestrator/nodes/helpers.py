"""Text helpers shared by the analysis nodes."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from langchain_core.messages import BaseMessage

_SCORE_PATTERN = re.compile(r"(\d+)(?:/100|%)")

DEFAULT_SCORE = 50


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def message_text(message: Optional[BaseMessage]) -> str:
    """Plain text of a message; list content parts are joined with spaces."""
    if message is None:
        return ""
    content = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(part if isinstance(part, str) else json.dumps(part) for part in content)
    return str(content)


def last_message_text(state: Mapping[str, Any]) -> str:
    messages = state.get("messages") or []
    return message_text(messages[-1]) if messages else ""


def extract_key_terms(text: str) -> List[str]:
    """First ten lower-cased words longer than four characters."""
    return [word for word in text.lower().split() if len(word) > 4][:10]


def extract_score(content: str) -> int:
    """First ``N/100`` or ``N%`` in the text, else the default score."""
    match = _SCORE_PATTERN.search(content)
    return int(match.group(1)) if match else DEFAULT_SCORE


def generate_recommendation(score: float) -> str:
    if score >= 80:
        return "Highly recommended for patent filing and commercialization"
    if score >= 60:
        return "Recommended with further development"
    if score >= 40:
        return "Proceed with caution, needs significant work"
    return "Not recommended in current form"


def synthesize(analysis_results: Mapping[str, Any]) -> Dict[str, Any]:
    """Overall score and recommendation from the three analysis scores.

    A missing (or zero) score counts as the default in the average and is
    shown as N/A in the summary.
    """
    novelty = (analysis_results.get("novelty_analysis") or {}).get("novelty_score")
    feasibility = (analysis_results.get("feasibility_analysis") or {}).get("feasibility_score")
    impact = (analysis_results.get("impact_analysis") or {}).get("impact_score")

    overall = round(
        ((novelty or DEFAULT_SCORE) + (feasibility or DEFAULT_SCORE) + (impact or DEFAULT_SCORE)) / 3
    )
    return {
        "overall_score": overall,
        "recommendation": generate_recommendation(overall),
        "summary": (
            f"Research complete. Novelty: {novelty or 'N/A'}, "
            f"Feasibility: {feasibility or 'N/A'}, Impact: {impact or 'N/A'}"
        ),
        "timestamp": now_iso(),
    }
