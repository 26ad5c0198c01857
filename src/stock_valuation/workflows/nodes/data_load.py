"""LangGraph node loading peer ratios, the latest price and statements from storage."""
from __future__ import annotations

from stock_valuation.workflows.context import WorkflowContext
from stock_valuation.workflows.state import ValuationState


def run(state: ValuationState, context: WorkflowContext) -> ValuationState:
    """Populate the workflow state with everything the valuation nodes read."""
    logs = state.setdefault("logs", [])
    if state.get("not_found"):
        logs.append("DataLoad -> skipped (no company)")
        return state

    company = state["company"]
    repository = context.repository
    limit = context.config.statement_limit

    state["peer"] = repository.fetch_peer(company.company_id)
    state["latest_price"] = repository.fetch_latest_price(company.company_id)
    state["statements"] = repository.fetch_statements(company.company_id, limit=limit)

    logs.append(
        f"DataLoad -> {len(state['statements'])} statements (limit {limit}), "
        f"latest price {state['latest_price']}, peer row {'found' if state['peer'] else 'missing'}"
    )
    return state
