"""Workflow blueprint describing valuation stages and their handlers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, TYPE_CHECKING

from stock_valuation.workflows.nodes import (
    company_lookup,
    data_load,
    expert_valuation,
    scorecard,
)

if TYPE_CHECKING:
    from stock_valuation.workflows.context import WorkflowContext
    from stock_valuation.workflows.state import ValuationState


@dataclass
class StageSpec:
    """Single LangGraph stage definition."""

    key: str
    description: str
    handler: Callable[["ValuationState", "WorkflowContext"], "ValuationState"]
    depends_on: List[str] = field(default_factory=list)


def build_default_stages() -> List[StageSpec]:
    """Return the ordered stages for the valuation workflow."""
    return [
        StageSpec(
            key="lookup_company",
            description="Resolve the requested name to a stored company (case-insensitive substring).",
            handler=company_lookup.run,
        ),
        StageSpec(
            key="load_financials",
            description="Load the peer row, latest price and most recent statements from SQLite.",
            handler=data_load.run,
            depends_on=["lookup_company"],
        ),
        StageSpec(
            key="expert_valuation",
            description="Resolve line items, compute ratios, Piotroski score and DCF, pick a verdict.",
            handler=expert_valuation.run,
            depends_on=["load_financials"],
        ),
        StageSpec(
            key="scorecard",
            description="Score peer-table PE, PB, ROE, leverage, margin trend and price-range position.",
            handler=scorecard.run,
            depends_on=["load_financials"],
        ),
    ]
