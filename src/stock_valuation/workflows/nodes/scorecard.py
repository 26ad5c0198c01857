"""LangGraph node scoring the peer-table ratios and price range."""
from __future__ import annotations

from stock_valuation.workflows.context import WorkflowContext
from stock_valuation.workflows.state import ValuationState


def run(state: ValuationState, context: WorkflowContext) -> ValuationState:
    logs = state.setdefault("logs", [])
    if state.get("not_found"):
        logs.append("Scorecard -> skipped (no company)")
        return state

    company = state["company"]
    result = context.scorecard.evaluate(
        state.get("peer"),
        state.get("latest_price"),
        company.year_high,
        company.year_low,
    )
    state["scorecard"] = result
    logs.append(f"Scorecard -> {result.verdict.value} ({result.score} points)")
    return state
