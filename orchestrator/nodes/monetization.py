"""Monetization graph nodes: market research, business model, pricing,
a strategy-selection gate and the implementation plan."""

from __future__ import annotations

import json
import logging
import random

from langchain_core.messages import AIMessage

from ..engine.context import Interrupt, NodeContext
from .catalog import builtin_node
from .helpers import last_message_text, now_iso

logger = logging.getLogger(__name__)

STRATEGY_PROMPT = "Choose your preferred monetization approach:"
STRATEGY_OPTIONS = ["Licensing Focus", "Direct Product Sales", "Hybrid Approach"]


def _market(state) -> dict:
    return dict(state.get("market_analysis") or {})


@builtin_node("marketResearchNode")
async def market_research(state, ctx: NodeContext):
    logger.info("Conducting market research...")
    response = await ctx.complete(f"Conduct market research for: {last_message_text(state)}")
    market = _market(state)
    market["market_research"] = {
        "analysis": response.text,
        "market_size": random.randint(100_000, 1_099_999),
        "timestamp": now_iso(),
    }
    return {
        "market_analysis": market,
        "messages": [AIMessage(content=f"Market Research: {response.text}")],
    }


@builtin_node("businessModelNode")
async def business_model(state, ctx: NodeContext):
    logger.info("Developing business model...")
    market = _market(state)
    research = (market.get("market_research") or {}).get("analysis")
    response = await ctx.complete(f"Develop business model based on market research: {research}")
    market["business_model"] = {
        "model": response.text,
        "revenue_streams": ["Licensing", "Direct Sales", "Subscription"],
        "timestamp": now_iso(),
    }
    return {
        "market_analysis": market,
        "messages": [AIMessage(content=f"Business Model: {response.text}")],
    }


@builtin_node("pricingStrategyNode")
async def pricing_strategy(state, ctx: NodeContext):
    logger.info("Developing pricing strategy...")
    market = _market(state)
    model = (market.get("business_model") or {}).get("model")
    response = await ctx.complete(f"Create pricing strategy for: {model}")
    market["pricing_strategy"] = {
        "strategy": response.text,
        "price_points": ["$99/month", "$999/year", "$5000 enterprise"],
        "timestamp": now_iso(),
    }
    return {
        "market_analysis": market,
        "messages": [AIMessage(content=f"Pricing Strategy: {response.text}")],
    }


@builtin_node("awaitStrategyApprovalNode")
async def await_strategy_approval(state, ctx: NodeContext):
    if not ctx.resumed:
        logger.info("Awaiting monetization strategy approval...")
        return Interrupt({
            "prompt": STRATEGY_PROMPT,
            "options": list(STRATEGY_OPTIONS),
            "type": "strategy_selection",
            "context": state.get("market_analysis"),
        })
    return {
        "current_monetization_agent": str(ctx.resume_value),
        "messages": [AIMessage(content=f"Strategy approved: {json.dumps(ctx.resume_value, default=str)}")],
    }


@builtin_node("implementationPlanNode")
async def implementation_plan(state, ctx: NodeContext):
    logger.info("Creating implementation plan...")
    market = _market(state)
    response = await ctx.complete(
        f"Create implementation plan for approved strategy: {json.dumps(market, default=str)}"
    )
    market["implementation_plan"] = {
        "plan": response.text,
        "timeline": "6 months",
        "milestones": ["Legal Setup", "Product Development", "Market Entry"],
        "timestamp": now_iso(),
    }
    return {
        "market_analysis": market,
        "messages": [AIMessage(content=f"Implementation Plan: {response.text}")],
    }
