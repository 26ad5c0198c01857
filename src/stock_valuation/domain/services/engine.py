"""Valuation engine: statements in, expert valuation payload out.

Pure and synchronous; holds only immutable configuration so one instance can
serve concurrent callers. Data flows resolver -> series -> {ratios,
Piotroski, DCF} -> recommendation.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Mapping, Optional, Sequence, Union

from stock_valuation.config import Config
from stock_valuation.domain.errors import StatementsNotFoundError
from stock_valuation.domain.models.financials import Statement
from stock_valuation.domain.models.valuation import DcfResult, ExpertValuation
from stock_valuation.domain.services.calculations import (
    PiotroskiScorer,
    RatioCalculator,
    RecommendationSelector,
)
from stock_valuation.domain.services.dcf import DcfAssumptions, DcfProjector
from stock_valuation.domain.services.line_items import build_series_set, load_label_table, parse_numeric

logger = logging.getLogger(__name__)


class ValuationEngine:
    """Aggregate ratios, the Piotroski score and a DCF into one recommendation."""

    def __init__(
        self,
        labels: Optional[Mapping[str, Sequence[str]]] = None,
        assumptions: Optional[DcfAssumptions] = None,
    ) -> None:
        source = labels if labels is not None else load_label_table()
        self._labels = {metric: tuple(candidates) for metric, candidates in source.items()}
        self._ratio_calculator = RatioCalculator()
        self._piotroski = PiotroskiScorer()
        self._dcf = DcfProjector(assumptions)
        self._selector = RecommendationSelector()

    @classmethod
    def from_config(cls, config: Config) -> "ValuationEngine":
        return cls(
            labels=load_label_table(config.line_item_labels_path),
            assumptions=DcfAssumptions.from_config(config),
        )

    @property
    def assumptions(self) -> DcfAssumptions:
        return self._dcf.assumptions

    def with_assumptions(self, **overrides: float) -> "ValuationEngine":
        """Copy of this engine with some DCF assumptions replaced."""
        return ValuationEngine(labels=self._labels, assumptions=replace(self.assumptions, **overrides))

    def evaluate(
        self,
        statements: Sequence[Statement],
        latest_price: Union[float, Decimal, None] = None,
        shares_outstanding: Union[float, Decimal, None] = None,
    ) -> ExpertValuation:
        """Run the full derivation over statements ordered most-recent-first."""
        if not statements:
            raise StatementsNotFoundError()

        latest_price = parse_numeric(latest_price)
        shares_outstanding = parse_numeric(shares_outstanding)

        series = build_series_set(statements, self._labels)
        logger.debug(
            "Resolved %d metrics across %d statements",
            sum(1 for values in series.values() if any(v is not None for v in values)),
            len(statements),
        )

        ratios = self._ratio_calculator.calculate(series)
        piotroski = self._piotroski.score(series, ratios)
        dcf = self._dcf.project(
            series.get("operatingCashFlow", []),
            series.get("capex", []),
            shares_outstanding,
        )

        checklist = list(ratios.checklist)
        checklist.append(f"Piotroski-like score: {piotroski.score} / {piotroski.max_score}")
        checklist.append(_dcf_note(dcf, self.assumptions))

        recommendation = self._selector.select(ratios, dcf, latest_price)
        return ExpertValuation(
            latest_price=latest_price,
            shares_outstanding=shares_outstanding,
            ratios=ratios,
            series=series,
            piotroski=piotroski,
            dcf=dcf,
            recommendation=recommendation,
            checklist=checklist,
        )


def _dcf_note(dcf: DcfResult, assumptions: DcfAssumptions) -> str:
    if dcf.possible:
        return "DCF computed (using OCF-based FCF proxy). Review assumptions (growth/discount)."
    return (
        "⚠ Not enough cash-flow history to run meaningful DCF "
        f"(need >= {assumptions.min_history} yrs)."
    )
