"""Research graph nodes.

Two families over the same analysis pipeline
(input -> novelty / feasibility / impact -> synthesis -> approval gate):

- sequential nodes write ``current_step`` and replace ``analysis_results``
  wholesale (the sequential schema has no reducer on it)
- concurrent nodes return only their own ``analysis_results`` key and
  append to ``current_steps``; the concurrent schema merges them at fan-in
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from langchain_core.messages import AIMessage

from ..engine.context import Interrupt, NodeContext
from .catalog import builtin_node
from .helpers import extract_key_terms, extract_score, last_message_text, now_iso, synthesize

logger = logging.getLogger(__name__)

APPROVAL_PROMPT = "Do you want to proceed with this research analysis?"
APPROVAL_OPTIONS = ["Yes, proceed", "No, revise analysis", "Need more information"]


def _input_analysis_text(state: Dict[str, Any]) -> Any:
    return ((state.get("analysis_results") or {}).get("input_analysis") or {}).get("analysis")


async def _analyze_input(state: Dict[str, Any], ctx: NodeContext) -> Dict[str, Any]:
    text = last_message_text(state)
    response = await ctx.complete(f"Analyze this invention disclosure for key information: {text}")
    return {
        "result": {
            "analysis": response.text,
            "key_terms": extract_key_terms(text),
            "timestamp": now_iso(),
        },
        "message": AIMessage(content=f"Input Analysis Complete: {response.text}"),
    }


async def _score(state: Dict[str, Any], ctx: NodeContext, kind: str, prompt: str, label: str) -> Dict[str, Any]:
    response = await ctx.complete(f"{prompt}: {_input_analysis_text(state)}")
    return {
        "result": {
            "analysis": response.text,
            f"{kind}_score": extract_score(response.text),
            "timestamp": now_iso(),
        },
        "message": AIMessage(content=f"{label}: {response.text}"),
    }


async def _novelty(state, ctx):
    return await _score(state, ctx, "novelty", "Analyze novelty based on", "Novelty Analysis")


async def _feasibility(state, ctx):
    return await _score(
        state, ctx, "feasibility", "Analyze technical feasibility based on", "Feasibility Analysis",
    )


async def _impact(state, ctx):
    return await _score(state, ctx, "impact", "Analyze market impact based on", "Impact Analysis")


def _synthesis_message(synthesis: Dict[str, Any]) -> AIMessage:
    return AIMessage(
        content=f"Research Summary: {synthesis['summary']}\n\nRecommendation: {synthesis['recommendation']}"
    )


def _approval_request(state: Dict[str, Any]) -> Interrupt:
    return Interrupt({
        "prompt": APPROVAL_PROMPT,
        "options": list(APPROVAL_OPTIONS),
        "type": "approval_gate",
        "results": (state.get("analysis_results") or {}).get("synthesis"),
    })


def _decision_message(value: Any) -> AIMessage:
    return AIMessage(content=f"User decision: {json.dumps(value, default=str)}")


# ─── Sequential research ─────────────────────────────────────────────


def _sequential(state: Dict[str, Any], key: str, result: Dict[str, Any], step: str, message) -> Dict[str, Any]:
    return {
        "analysis_results": {**(state.get("analysis_results") or {}), key: result},
        "current_step": step,
        "messages": [message],
    }


@builtin_node("inputAnalysisNode")
async def input_analysis(state, ctx: NodeContext):
    logger.info("Starting input analysis...")
    out = await _analyze_input(state, ctx)
    return _sequential(state, "input_analysis", out["result"], "input_analysis", out["message"])


@builtin_node("noveltyAnalysisNode")
async def novelty_analysis(state, ctx: NodeContext):
    logger.info("Performing novelty analysis...")
    out = await _novelty(state, ctx)
    return _sequential(state, "novelty_analysis", out["result"], "novelty_analysis", out["message"])


@builtin_node("feasibilityAnalysisNode")
async def feasibility_analysis(state, ctx: NodeContext):
    logger.info("Performing feasibility analysis...")
    out = await _feasibility(state, ctx)
    return _sequential(
        state, "feasibility_analysis", out["result"], "feasibility_analysis", out["message"],
    )


@builtin_node("impactAnalysisNode")
async def impact_analysis(state, ctx: NodeContext):
    logger.info("Performing impact analysis...")
    out = await _impact(state, ctx)
    return _sequential(state, "impact_analysis", out["result"], "impact_analysis", out["message"])


@builtin_node("synthesisNode")
async def synthesis(state):
    logger.info("Generating research synthesis...")
    result = synthesize(state.get("analysis_results") or {})
    return _sequential(state, "synthesis", result, "synthesis", _synthesis_message(result))


@builtin_node("awaitApprovalNode")
async def await_approval(state, ctx: NodeContext):
    if not ctx.resumed:
        logger.info("Awaiting user approval for research results...")
        return _approval_request(state)
    return {
        "current_step": "await_approval",
        "messages": [_decision_message(ctx.resume_value)],
    }


# ─── Concurrent research ─────────────────────────────────────────────


def _concurrent(key: str, result: Dict[str, Any], step: str, message) -> Dict[str, Any]:
    return {
        "analysis_results": {key: result},
        "current_steps": [step],
        "messages": [message],
    }


@builtin_node("concurrentInputAnalysisNode")
async def concurrent_input_analysis(state, ctx: NodeContext):
    logger.info("Starting concurrent input analysis...")
    out = await _analyze_input(state, ctx)
    return _concurrent("input_analysis", out["result"], "concurrent_input_analysis", out["message"])


@builtin_node("concurrentNoveltyAnalysisNode")
async def concurrent_novelty_analysis(state, ctx: NodeContext):
    logger.info("Performing concurrent novelty analysis...")
    out = await _novelty(state, ctx)
    return _concurrent("novelty_analysis", out["result"], "concurrent_novelty_analysis", out["message"])


@builtin_node("concurrentFeasibilityAnalysisNode")
async def concurrent_feasibility_analysis(state, ctx: NodeContext):
    logger.info("Performing concurrent feasibility analysis...")
    out = await _feasibility(state, ctx)
    return _concurrent(
        "feasibility_analysis", out["result"], "concurrent_feasibility_analysis", out["message"],
    )


@builtin_node("concurrentImpactAnalysisNode")
async def concurrent_impact_analysis(state, ctx: NodeContext):
    logger.info("Performing concurrent impact analysis...")
    out = await _impact(state, ctx)
    return _concurrent("impact_analysis", out["result"], "concurrent_impact_analysis", out["message"])


@builtin_node("concurrentSynthesisNode")
async def concurrent_synthesis(state):
    logger.info("Generating concurrent research synthesis...")
    result = synthesize(state.get("analysis_results") or {})
    return _concurrent("synthesis", result, "concurrent_synthesis", _synthesis_message(result))


@builtin_node("concurrentAwaitApprovalNode")
async def concurrent_await_approval(state, ctx: NodeContext):
    if not ctx.resumed:
        logger.info("Awaiting concurrent user approval for research results...")
        return _approval_request(state)
    return {
        "current_steps": ["concurrent_await_approval"],
        "messages": [_decision_message(ctx.resume_value)],
    }
