"""LangGraph node resolving the requested company name to a stored company."""
from __future__ import annotations

from stock_valuation.domain.errors import CompanyNotFoundError
from stock_valuation.workflows.context import WorkflowContext
from stock_valuation.workflows.state import ValuationState


def run(state: ValuationState, context: WorkflowContext) -> ValuationState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    name = state["company_name"]

    logs.append(f"CompanyLookup -> searching for '{name}'")
    company = context.repository.find_company_by_name(name)
    if company is None:
        errors.append(CompanyNotFoundError(name).message)
        state["not_found"] = True
        return state

    state["company"] = company
    logs.append(f"Matched {company.name} (company_id={company.company_id})")
    return state
