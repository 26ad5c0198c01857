"""Unit tests for ratio tiers, the Piotroski score and recommendations."""
from __future__ import annotations

import json
import math

import pytest

from conftest import YEARS, make_statement
from stock_valuation.domain.models.valuation import DcfResult, Verdict
from stock_valuation.domain.services.calculations import (
    PiotroskiScorer,
    RatioCalculator,
    RecommendationSelector,
    cash_quality_tier,
    leverage_tier,
    percent_change,
    qualitative_recommendation,
)
from stock_valuation.domain.services.line_items import build_series_set, load_label_table


def _series(years):
    return build_series_set([make_statement(v) for v in years], load_label_table())


def test_ratio_metrics_and_tiers():
    summary = RatioCalculator().calculate(_series(YEARS))
    m = summary.metrics
    assert m["roe"] == 15.0
    assert summary.tiers["roe"] == "ok"
    assert m["roa"] == pytest.approx(7.5)
    assert m["debtToEquity"] == pytest.approx(0.3)
    assert summary.tiers["debtToEquity"] == "low"
    assert m["revenueYoY"] == 10.0
    assert summary.tiers["revenueYoY"] == "stable"
    assert m["profitYoY"] == pytest.approx(25.0)
    assert summary.tiers["profitYoY"] == "strong"
    assert m["ocfToNetIncome"] == pytest.approx(1.2)
    assert m["epsGrowth"] == pytest.approx(25.0)
    assert "ROE: 15.00%" in summary.checklist
    assert "= ROE 10-15% (ok)" in summary.checklist


def test_missing_inputs_produce_none_and_a_warning():
    summary = RatioCalculator().calculate(_series([{"revenue": 100, "totalEquity": 0}]))
    assert summary.metrics["roe"] is None
    assert summary.metrics["revenueYoY"] is None
    assert "roe" not in summary.tiers
    assert any("ROE could not be computed" in line for line in summary.checklist)


def test_leverage_falls_back_to_total_liabilities():
    years = [dict(y, longTermDebt=None) for y in YEARS[:1]]
    summary = RatioCalculator().calculate(_series(years))
    assert summary.metrics["debtToEquity"] == pytest.approx(1.0)
    assert summary.tiers["debtToEquity"] == "moderate"


def test_percent_change_uses_absolute_base():
    assert percent_change(-50, -100) == 50.0
    assert percent_change(10, 0) is None
    assert percent_change(None, 5) is None


def test_piotroski_full_score():
    series = _series(YEARS)
    result = PiotroskiScorer().score(series, RatioCalculator().calculate(series))
    assert result.score == 4
    assert result.tests[-1] == "✔ Leverage improved"


def test_piotroski_without_prior_equity_reports_unavailable():
    series = _series(YEARS[:1])
    result = PiotroskiScorer().score(series, RatioCalculator().calculate(series))
    assert result.score == 2
    assert result.tests[-1] == "⚠ Leverage change unavailable"


@pytest.mark.parametrize(
    "intrinsic, verdict",
    [(120.0, Verdict.UNDERVALUED), (95.0, Verdict.FAIRLY_VALUED), (80.0, Verdict.OVERVALUED)],
)
def test_dcf_recommendation_thresholds(intrinsic, verdict):
    ratios = RatioCalculator().calculate(_series(YEARS))
    dcf = DcfResult(possible=True, intrinsic_per_share=intrinsic)
    rec = RecommendationSelector().select(ratios, dcf, 100.0)
    assert rec.verdict is verdict
    assert rec.ratio == pytest.approx(intrinsic / 100.0)
    assert not rec.is_qualitative


def test_fallback_when_dcf_not_possible():
    ratios = RatioCalculator().calculate(_series(YEARS))
    rec = RecommendationSelector().select(ratios, DcfResult.not_possible(), 100.0)
    # ROE ok (+1), low leverage (+1), revenue 10% (+1), profit 25% (+1), cash quality (+1)
    assert rec.score == 5
    assert rec.verdict is Verdict.LIKELY_UNDERVALUED
    assert rec.is_qualitative
    assert "ratio" not in rec.to_dict()


def test_fallback_when_market_price_missing():
    ratios = RatioCalculator().calculate(_series(YEARS))
    rec = RecommendationSelector().select(ratios, DcfResult(possible=True, intrinsic_per_share=50.0), None)
    assert rec.is_qualitative
    assert rec.reasons[0].startswith("Market price unavailable")


def test_qualitative_bands():
    assert qualitative_recommendation({}).verdict is Verdict.POSSIBLY_OVERVALUED
    assert qualitative_recommendation({"roe": 20}).verdict is Verdict.POSSIBLY_FAIRLY_VALUED


def test_tier_boundaries():
    assert leverage_tier(0.4999) == "low"
    assert leverage_tier(0.5) == "moderate"
    assert leverage_tier(1.5) == "moderate"
    assert leverage_tier(1.5001) == "high"
    assert cash_quality_tier(0.8) == "weak"
    assert cash_quality_tier(0.8001) == "supports"


def test_overflowing_ratios_are_treated_as_missing():
    summary = RatioCalculator().calculate(
        _series([{"netIncome": 1e308, "totalEquity": 1e-10, "revenue": 1e308}, {"revenue": -1e-10}])
    )
    assert summary.metrics["roe"] is None
    assert summary.metrics["revenueYoY"] is None
    assert "roe" not in summary.tiers
    assert not any("inf" in line for line in summary.checklist)
    json.dumps(summary.metrics, allow_nan=False)


def test_percent_change_overflow_is_none():
    assert percent_change(1e308, -1e-300) is None
    assert percent_change(1e308, 1e-300) is None


def test_ratio_exactly_at_fair_threshold_is_fairly_valued():
    ratios = RatioCalculator().calculate(_series(YEARS))
    rec = RecommendationSelector().select(ratios, DcfResult(possible=True, intrinsic_per_share=90.0), 100.0)
    assert rec.ratio == 0.9
    assert rec.verdict is Verdict.FAIRLY_VALUED


@pytest.mark.parametrize("intrinsic", [-5.0, 0.0, math.inf, math.nan])
def test_invalid_intrinsic_price_falls_back_to_qualitative(intrinsic):
    ratios = RatioCalculator().calculate(_series(YEARS))
    rec = RecommendationSelector().select(ratios, DcfResult(possible=True, intrinsic_per_share=intrinsic), 100.0)
    assert rec.is_qualitative
    assert rec.verdict is Verdict.LIKELY_UNDERVALUED
    assert rec.reasons[0] == "DCF produced an invalid intrinsic price."


def test_overflowing_price_ratio_falls_back_to_qualitative():
    ratios = RatioCalculator().calculate(_series(YEARS))
    rec = RecommendationSelector().select(ratios, DcfResult(possible=True, intrinsic_per_share=1e308), 1e-10)
    assert rec.is_qualitative
    assert rec.reasons[0] == "DCF to market price ratio is out of range."
    json.dumps(rec.to_dict(), allow_nan=False)
