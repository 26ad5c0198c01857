"""Peer-table valuation scorecard.

Six independent checks over the peer comparison ratios and the position of
the latest price inside the yearly range. Each check adds at most one point;
a check whose inputs are absent (None, zero or NaN) is skipped without
penalty. This scorecard is independent of the qualitative fallback used by
the expert recommendation and keeps its own scale and thresholds.
"""
from __future__ import annotations

import math
from typing import List, Optional

from stock_valuation.domain.models.financials import PeerComparison
from stock_valuation.domain.models.valuation import ScorecardResult, ScorecardVerdict


class ScorecardAggregator:
    """Score PE, PB, ROE, leverage, margin trend and price-range position."""

    undervalued_score = 7
    fair_score = 4

    def evaluate(
        self,
        peer: Optional[PeerComparison],
        latest_price: Optional[float],
        year_high: Optional[float],
        year_low: Optional[float],
    ) -> ScorecardResult:
        peer = peer or PeerComparison()
        score = 0
        checklist: List[str] = []

        if _present(peer.pe_ratio):
            if peer.pe_ratio < 15:
                score += 1
                checklist.append("✔ PE ratio indicates the stock may be undervalued.")
            elif peer.pe_ratio <= 25:
                checklist.append("= PE ratio is within fair valuation range.")
            else:
                checklist.append("✖ PE ratio indicates the stock may be overvalued.")

        if _present(peer.pb_ratio):
            if peer.pb_ratio < 1:
                score += 1
                checklist.append("✔ PB ratio < 1: Stock appears undervalued.")
            elif peer.pb_ratio <= 3:
                checklist.append("= PB ratio indicates fair valuation.")
            else:
                checklist.append("✖ PB ratio > 3: Stock might be overvalued.")

        if _present(peer.roe_ttm):
            if peer.roe_ttm > 15:
                score += 1
                checklist.append("✔ ROE > 15%: Strong profitability.")
            elif peer.roe_ttm >= 10:
                checklist.append("= ROE is acceptable.")
            else:
                checklist.append("✖ ROE < 10%: Weak profitability.")

        if _present(peer.debt_to_equity):
            if peer.debt_to_equity < 0.5:
                score += 1
                checklist.append("✔ Low debt: Very safe company.")
            elif peer.debt_to_equity <= 1.5:
                checklist.append("= Debt level is acceptable.")
            else:
                checklist.append("✖ High debt: Risky company.")

        if _present(peer.net_profit_margin_ttm) and _present(peer.net_profit_margin_5yr):
            if peer.net_profit_margin_ttm > peer.net_profit_margin_5yr:
                score += 1
                checklist.append("✔ Profit margin improving against its 5-year average.")
            else:
                checklist.append("✖ Profit margin declining.")

        position = price_range_position(latest_price, year_high, year_low)
        if position is not None:
            if position < 0.3:
                score += 1
                checklist.append("✔ Stock is trading near year low (undervalued zone).")
            elif position < 0.7:
                checklist.append("= Stock is fairly priced within its range.")
            else:
                checklist.append("✖ Near year high: potentially overvalued.")

        if score >= self.undervalued_score:
            verdict = ScorecardVerdict.UNDERVALUED
        elif score >= self.fair_score:
            verdict = ScorecardVerdict.FAIRLY_VALUED
        else:
            verdict = ScorecardVerdict.OVERVALUED
        return ScorecardResult(score=score, verdict=verdict, checklist=checklist, latest_price=latest_price)


def price_range_position(
    price: Optional[float], year_high: Optional[float], year_low: Optional[float]
) -> Optional[float]:
    """(price - low) / (high - low); None when an input is absent or the range is empty."""
    if not (_present(price) and _present(year_high) and _present(year_low)):
        return None
    if year_high == year_low:
        return None
    position = (price - year_low) / (year_high - year_low)
    return position if math.isfinite(position) else None


def _present(value: Optional[float]) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    return value != 0
