"""Result types produced by the valuation engine and the peer scorecard.

Every ``to_dict`` emits the camelCase keys of the JSON payload served to
callers; attribute names stay snake_case on the Python side.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Index 0 is the most recent period; one entry per statement supplied.
MetricSeries = List[Optional[float]]


class Verdict(str, Enum):
    """Final call of the expert valuation (DCF path or qualitative fallback)."""

    UNDERVALUED = "Undervalued"
    FAIRLY_VALUED = "Fairly valued"
    OVERVALUED = "Overvalued"
    LIKELY_UNDERVALUED = "Likely Undervalued"
    POSSIBLY_FAIRLY_VALUED = "Possibly Fairly Valued"
    POSSIBLY_OVERVALUED = "Possibly Overvalued"
    # Reserved for callers without statements; the engine raises StatementsNotFoundError instead.
    INSUFFICIENT_DATA = "Insufficient data"


class ScorecardVerdict(str, Enum):
    """Verdict of the peer-ratio scorecard."""

    UNDERVALUED = "Undervalued"
    FAIRLY_VALUED = "Fairly Valued"
    OVERVALUED = "Overvalued"


@dataclass
class RatioSummary:
    """Point-in-time ratios and growth rates with their qualitative tiers."""

    metrics: Dict[str, Optional[float]]
    tiers: Dict[str, str] = field(default_factory=dict)
    checklist: List[str] = field(default_factory=list)


@dataclass
class PiotroskiResult:
    """Reduced Piotroski score; unavailable tests count as failures."""

    score: int
    tests: List[str] = field(default_factory=list)
    max_score: int = 4

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "tests": list(self.tests)}


@dataclass
class DcfProjection:
    year: int
    fcf: float
    pv_year: float

    def to_dict(self) -> Dict[str, Any]:
        return {"year": self.year, "fcf": self.fcf, "pvYear": self.pv_year}


@dataclass
class DcfResult:
    """Discounted cash flow outcome; only ``possible`` is set when history is too short."""

    possible: bool
    historical_years: Optional[int] = None
    fcf_growth: Optional[float] = None
    discount_rate: Optional[float] = None
    terminal_growth: Optional[float] = None
    projections: List[DcfProjection] = field(default_factory=list)
    pv: Optional[float] = None
    pv_terminal: Optional[float] = None
    intrinsic_total: Optional[float] = None
    intrinsic_per_share: Optional[float] = None

    @classmethod
    def not_possible(cls) -> "DcfResult":
        return cls(possible=False)

    def to_dict(self) -> Dict[str, Any]:
        if not self.possible:
            return {"possible": False}
        return {
            "possible": True,
            "assumptions": {
                "historicalYears": self.historical_years,
                "fcfGrowth": self.fcf_growth,
                "discountRate": self.discount_rate,
                "terminalGrowth": self.terminal_growth,
            },
            "projections": [p.to_dict() for p in self.projections],
            "pv": self.pv,
            "pvTerminal": self.pv_terminal,
            "intrinsicTotal": self.intrinsic_total,
            "intrinsicPerShare": self.intrinsic_per_share,
        }


@dataclass
class ValuationRecommendation:
    """Final verdict with either the intrinsic/market ratio or the fallback score."""

    verdict: Verdict
    ratio: Optional[float] = None
    score: Optional[int] = None
    intrinsic_per_share: Optional[float] = None
    market_price: Optional[float] = None
    reasons: List[str] = field(default_factory=list)

    @property
    def is_qualitative(self) -> bool:
        return self.ratio is None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"verdict": self.verdict.value}
        if self.ratio is not None:
            payload["ratio"] = self.ratio
            payload["intrinsicPerShare"] = self.intrinsic_per_share
            payload["marketPrice"] = self.market_price
        if self.score is not None:
            payload["score"] = self.score
        payload["reasons"] = list(self.reasons)
        return payload


@dataclass
class ScorecardResult:
    """Peer-ratio scorecard outcome."""

    score: int
    verdict: ScorecardVerdict
    checklist: List[str] = field(default_factory=list)
    latest_price: Optional[float] = None

    def to_dict(self, company_name: Optional[str] = None) -> Dict[str, Any]:
        return {
            "company": company_name,
            "latestPrice": self.latest_price,
            "valuation": self.verdict.value,
            "score": self.score,
            "checklist": list(self.checklist),
        }


@dataclass
class ExpertValuation:
    """Full payload of one engine invocation."""

    latest_price: Optional[float]
    shares_outstanding: Optional[float]
    ratios: RatioSummary
    series: Dict[str, MetricSeries]
    piotroski: PiotroskiResult
    dcf: DcfResult
    recommendation: ValuationRecommendation
    checklist: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latestPrice": self.latest_price,
            "sharesOutstanding": self.shares_outstanding,
            "metrics": dict(self.ratios.metrics),
            "tiers": dict(self.ratios.tiers),
            "series": {name: list(values) for name, values in self.series.items()},
            "piotroski": self.piotroski.to_dict(),
            "dcf": self.dcf.to_dict(),
            "checklist": list(self.checklist),
            "valuationRecommendation": self.recommendation.to_dict(),
        }
