"""LangGraph node running the ratio, Piotroski and DCF valuation engine."""
from __future__ import annotations

import logging

from stock_valuation.domain.errors import NotFoundError
from stock_valuation.workflows.context import WorkflowContext
from stock_valuation.workflows.state import ValuationState

logger = logging.getLogger(__name__)


def run(state: ValuationState, context: WorkflowContext) -> ValuationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    if state.get("not_found"):
        logs.append("ExpertValuation -> skipped (no company)")
        return state

    engine = context.engine
    overrides = state.get("dcf_overrides") or {}
    if overrides:
        try:
            engine = engine.with_assumptions(**overrides)
        except (TypeError, ValueError) as exc:
            errors.append(f"Invalid DCF overrides {overrides}: {exc}")
            return state
        logs.append(f"ExpertValuation -> DCF overrides applied: {overrides}")

    peer = state.get("peer")
    shares = peer.shares_outstanding if peer is not None else None
    company = state["company"]
    try:
        result = engine.evaluate(state.get("statements") or [], state.get("latest_price"), shares)
    except NotFoundError:
        errors.append(f"No financial statements found for {company.name}")
        return state

    state["expert_valuation"] = result
    logger.info("Expert valuation for %s: %s", company.name, result.recommendation.verdict.value)
    logs.append(
        f"ExpertValuation -> {result.recommendation.verdict.value} "
        f"(Piotroski {result.piotroski.score}/{result.piotroski.max_score}, DCF possible={result.dcf.possible})"
    )
    return state
