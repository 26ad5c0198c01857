"""Workflow state definitions shared by LangGraph nodes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from stock_valuation.domain.models.financials import Company, PeerComparison, Statement
from stock_valuation.domain.models.valuation import ExpertValuation, ScorecardResult


class ValuationState(TypedDict, total=False):
    company_name: str
    valuation_date: str
    dcf_overrides: Dict[str, float]
    ingested_company_id: Optional[int]

    company: Optional[Company]
    peer: Optional[PeerComparison]
    latest_price: Optional[float]
    statements: List[Statement]

    expert_valuation: Optional[ExpertValuation]
    scorecard: Optional[ScorecardResult]

    # Set when a required input is missing; downstream nodes skip.
    not_found: bool
    stage_order: List[str]

    logs: List[str]
    errors: List[str]

    extras: Dict[str, Any]
