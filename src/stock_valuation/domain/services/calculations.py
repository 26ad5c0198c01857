"""Domain service layer providing financial ratio and verdict calculations.

This module implements:
- Point-in-time ratios (ROE, ROA, debt/equity, OCF/net income) and YoY growth
- A reduced Piotroski score over the resolved series
- The final recommendation (intrinsic/market ratio or qualitative fallback)

The implementations are robust to missing data: where a value cannot be
computed because an operand is missing or a denominator is zero, the metric is
``None`` and the checklist says so. Nothing here raises for sparse input.
"""
from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Sequence

from stock_valuation.domain.models.valuation import (
    DcfResult,
    MetricSeries,
    PiotroskiResult,
    RatioSummary,
    ValuationRecommendation,
    Verdict,
)

METRIC_NAMES = ("roe", "roa", "debtToEquity", "revenueYoY", "profitYoY", "ocfToNetIncome", "epsGrowth")

_ROE_NOTES = {
    "strong": "✔ ROE > 15% (strong)",
    "ok": "= ROE 10-15% (ok)",
    "weak": "✖ ROE < 10% (weak)",
}
_LEVERAGE_NOTES = {
    "low": "✔ Low debt relative to equity",
    "moderate": "= Moderate debt",
    "high": "✖ High leverage",
}
_CASH_NOTES = {
    "supports": "✔ Operating cash flow supports earnings",
    "weak": "⚠ Operating cash flow weak relative to earnings",
}


def roe_tier(roe: float) -> str:
    if roe > 15:
        return "strong"
    if roe >= 10:
        return "ok"
    return "weak"


def leverage_tier(debt_to_equity: float) -> str:
    if debt_to_equity < 0.5:
        return "low"
    if debt_to_equity <= 1.5:
        return "moderate"
    return "high"


def growth_tier(yoy: float) -> str:
    if yoy > 10:
        return "strong"
    if yoy >= 0:
        return "stable"
    return "declining"


def cash_quality_tier(ocf_to_net_income: float) -> str:
    return "supports" if ocf_to_net_income > 0.8 else "weak"


def percent_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """(current - previous) / |previous| in percent; None when undefined."""
    if current is None or previous is None or previous == 0:
        return None
    return _finite((current - previous) * 100.0 / abs(previous))


def debt_to_equity_at(series: Mapping[str, MetricSeries], index: int) -> Optional[float]:
    """Leverage for one period, preferring long-term debt over total liabilities."""
    debt = _at(series, "longTermDebt", index)
    if debt is None:
        debt = _at(series, "totalLiabilities", index)
    return _ratio(debt, _at(series, "totalEquity", index))


class RatioCalculator:
    """Derive the ratio set and its checklist from the latest and prior periods."""

    def calculate(self, series: Mapping[str, MetricSeries]) -> RatioSummary:
        metrics: Dict[str, Optional[float]] = {name: None for name in METRIC_NAMES}
        tiers: Dict[str, str] = {}
        checklist: List[str] = []

        net_income = _at(series, "netIncome", 0)
        equity = _at(series, "totalEquity", 0)

        roe = _ratio(net_income, equity, scale=100.0)
        metrics["roe"] = roe
        if roe is None:
            checklist.append("⚠ ROE could not be computed (missing Net Income or Equity).")
        else:
            tiers["roe"] = roe_tier(roe)
            checklist.append(f"ROE: {roe:.2f}%")
            checklist.append(_ROE_NOTES[tiers["roe"]])

        roa = _ratio(net_income, _at(series, "totalAssets", 0), scale=100.0)
        metrics["roa"] = roa
        if roa is None:
            checklist.append("⚠ ROA could not be computed (missing Net Income or Assets).")
        else:
            checklist.append(f"ROA: {roa:.2f}%")

        leverage = debt_to_equity_at(series, 0)
        metrics["debtToEquity"] = leverage
        if leverage is None:
            checklist.append("⚠ Debt/Equity could not be computed (missing debt or equity).")
        else:
            tiers["debtToEquity"] = leverage_tier(leverage)
            checklist.append(f"Debt-to-Equity: {leverage:.2f}")
            checklist.append(_LEVERAGE_NOTES[tiers["debtToEquity"]])

        for key, metric, label in (("revenue", "revenueYoY", "Revenue"), ("netIncome", "profitYoY", "Profit")):
            yoy = percent_change(_at(series, key, 0), _at(series, key, 1))
            metrics[metric] = yoy
            if yoy is None:
                checklist.append(f"⚠ {label} YoY could not be computed.")
                continue
            tiers[metric] = growth_tier(yoy)
            checklist.append(f"{label} YoY: {yoy:.2f}%")
            checklist.append(_growth_note(label, tiers[metric]))

        cash_quality = _ratio(_at(series, "operatingCashFlow", 0), net_income)
        metrics["ocfToNetIncome"] = cash_quality
        if cash_quality is None:
            checklist.append("⚠ OCF to Net Income ratio could not be computed.")
        else:
            tiers["ocfToNetIncome"] = cash_quality_tier(cash_quality)
            checklist.append(f"OCF/NetIncome: {cash_quality:.2f}")
            checklist.append(_CASH_NOTES[tiers["ocfToNetIncome"]])

        eps_growth = percent_change(_at(series, "eps", 0), _at(series, "eps", 1))
        metrics["epsGrowth"] = eps_growth
        if eps_growth is None:
            checklist.append("⚠ EPS growth could not be computed.")
        else:
            checklist.append(f"EPS YoY: {eps_growth:.2f}%")

        return RatioSummary(metrics=metrics, tiers=tiers, checklist=checklist)


class PiotroskiScorer:
    """Four independent binary health tests; unavailable data counts as a fail."""

    def score(self, series: Mapping[str, MetricSeries], ratios: RatioSummary) -> PiotroskiResult:
        score = 0
        tests: List[str] = []

        roa = ratios.metrics.get("roa")
        if roa is not None and roa > 0:
            score += 1
            tests.append("✔ ROA positive")
        else:
            tests.append("✖ ROA not positive or unavailable")

        ocf = _at(series, "operatingCashFlow", 0)
        if ocf is not None and ocf > 0:
            score += 1
            tests.append("✔ CFO positive")
        else:
            tests.append("✖ CFO not positive or unavailable")

        profit_yoy = ratios.metrics.get("profitYoY")
        if profit_yoy is not None and profit_yoy > 0:
            score += 1
            tests.append("✔ Profit improved YoY")
        else:
            tests.append("✖ Profit not improved or unavailable")

        has_debt = _at(series, "longTermDebt", 0) is not None or _at(series, "totalLiabilities", 0) is not None
        has_equity = _at(series, "totalEquity", 0) is not None and _at(series, "totalEquity", 1) is not None
        if has_debt and has_equity:
            current = debt_to_equity_at(series, 0)
            prior = debt_to_equity_at(series, 1)
            if current is not None and prior is not None and current < prior:
                score += 1
                tests.append("✔ Leverage improved")
            else:
                tests.append("✖ Leverage not improved or insufficient data")
        else:
            tests.append("⚠ Leverage change unavailable")

        return PiotroskiResult(score=score, tests=tests)


class RecommendationSelector:
    """Compare DCF intrinsic value with the market price, else fall back to ratios."""

    undervalued_ratio = 1.2
    fair_ratio = 0.9

    def select(self, ratios: RatioSummary, dcf: DcfResult, market_price: Optional[float]) -> ValuationRecommendation:
        intrinsic = dcf.intrinsic_per_share if dcf.possible else None
        usable_intrinsic = intrinsic is not None and math.isfinite(intrinsic) and intrinsic > 0
        usable_price = market_price is not None and math.isfinite(market_price) and market_price > 0

        ratio = _finite(intrinsic / market_price) if usable_intrinsic and usable_price else None
        if ratio is not None:
            if ratio >= self.undervalued_ratio:
                verdict = Verdict.UNDERVALUED
            elif ratio >= self.fair_ratio:
                verdict = Verdict.FAIRLY_VALUED
            else:
                verdict = Verdict.OVERVALUED
            return ValuationRecommendation(
                verdict=verdict,
                ratio=ratio,
                intrinsic_per_share=intrinsic,
                market_price=float(market_price),
                reasons=[
                    f"DCF intrinsic value {intrinsic:.2f} per share vs market price "
                    f"{market_price:.2f} (ratio {ratio:.2f})."
                ],
            )

        reasons: List[str] = []
        if not dcf.possible:
            reasons.append("DCF not possible with the available cash-flow history.")
        elif intrinsic is None:
            reasons.append("DCF has no per-share value because shares outstanding are unknown.")
        elif not usable_intrinsic:
            reasons.append("DCF produced an invalid intrinsic price.")
        elif not usable_price:
            reasons.append("Market price unavailable for comparison with the DCF value.")
        else:
            reasons.append("DCF to market price ratio is out of range.")
        return qualitative_recommendation(ratios.metrics, reasons)


def qualitative_recommendation(
    metrics: Mapping[str, Optional[float]], reasons: Optional[Sequence[str]] = None
) -> ValuationRecommendation:
    """0-6 point opinion from ROE, leverage, growth and cash quality."""
    score = 0
    roe = metrics.get("roe")
    if roe is not None and roe > 15:
        score += 2
    elif roe is not None and roe >= 10:
        score += 1
    if _below(metrics.get("debtToEquity"), 1):
        score += 1
    if _above(metrics.get("revenueYoY"), 5):
        score += 1
    if _above(metrics.get("profitYoY"), 5):
        score += 1
    if _above(metrics.get("ocfToNetIncome"), 0.7):
        score += 1

    if score >= 5:
        verdict = Verdict.LIKELY_UNDERVALUED
    elif score >= 2:
        verdict = Verdict.POSSIBLY_FAIRLY_VALUED
    else:
        verdict = Verdict.POSSIBLY_OVERVALUED

    notes = list(reasons or [])
    notes.append("Qualitative fallback opinion, not DCF-derived; use a DCF for a definitive intrinsic price.")
    return ValuationRecommendation(verdict=verdict, score=score, reasons=notes)


# ----------------------------
# Internal helpers
# ----------------------------

def _at(series: Mapping[str, MetricSeries], key: str, index: int) -> Optional[float]:
    values = series.get(key) or []
    return values[index] if index < len(values) else None


def _ratio(numerator: Optional[float], denominator: Optional[float], *, scale: float = 1.0) -> Optional[float]:
    if numerator is None or denominator is None or denominator == 0:
        return None
    # Multiply first: 150 * 100 / 1000 is exactly 15.0, 150 / 1000 * 100 is not.
    return _finite(numerator * scale / denominator)


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _growth_note(label: str, tier: str) -> str:
    if tier == "strong":
        return f"✔ Strong {label.lower()} growth"
    if tier == "stable":
        return f"= {label} stable/slow growth"
    return f"✖ {label} declining"


def _above(value: Optional[float], threshold: float) -> bool:
    return value is not None and value > threshold


def _below(value: Optional[float], threshold: float) -> bool:
    return value is not None and value < threshold
