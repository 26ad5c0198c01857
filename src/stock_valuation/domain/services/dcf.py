"""Discounted cash flow projection over a free-cash-flow proxy series.

The proxy is operating cash flow minus capital expenditure per period (missing
capex counts as zero, periods without OCF are dropped). Growth is estimated
from the retained history, clamped, compounded forward and closed with a
Gordon-growth terminal value.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from stock_valuation.config import Config
from stock_valuation.domain.models.valuation import DcfProjection, DcfResult, MetricSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DcfAssumptions:
    """Fixed inputs of the projection: 10% discount, 3% terminal growth, growth clamped to [-20%, 30%]."""

    discount_rate: float = 0.10
    terminal_growth: float = 0.03
    growth_floor: float = -0.20
    growth_cap: float = 0.30
    projection_years: int = 5
    min_history: int = 3

    def __post_init__(self) -> None:
        if self.discount_rate <= self.terminal_growth:
            raise ValueError("discount_rate must exceed terminal_growth for a finite terminal value.")
        if self.growth_floor > self.growth_cap:
            raise ValueError("growth_floor must not exceed growth_cap.")
        if self.projection_years < 1:
            raise ValueError("projection_years must be at least 1.")
        if self.min_history < 2:
            raise ValueError("min_history must be at least 2 to estimate growth.")

    @classmethod
    def from_config(cls, config: Config) -> "DcfAssumptions":
        return cls(
            discount_rate=config.dcf_discount_rate,
            terminal_growth=config.dcf_terminal_growth,
            growth_floor=config.dcf_growth_floor,
            growth_cap=config.dcf_growth_cap,
            projection_years=config.dcf_projection_years,
            min_history=config.dcf_min_history,
        )


def fcf_proxy_series(ocf: MetricSeries, capex: MetricSeries) -> List[float]:
    """OCF minus capex per period, most-recent-first, skipping periods without OCF."""
    values: List[float] = []
    for index, operating in enumerate(ocf):
        if operating is None:
            continue
        spend = capex[index] if index < len(capex) and capex[index] is not None else 0.0
        values.append(operating - spend)
    return values


def estimate_growth(fcf: Sequence[float]) -> float:
    """Unclamped growth estimate; 0.0 when the history gives nothing finite."""
    n = len(fcf)
    if n < 2:
        return 0.0
    newest, oldest = fcf[0], fcf[-1]

    if oldest > 0:
        growth = abs(newest / oldest) ** (1.0 / (n - 1)) - 1.0
        # The absolute value hides direction; a shrinking series must come out negative.
        if newest < oldest:
            growth = -abs(growth)
    else:
        values = np.asarray(fcf, dtype=float)
        current, previous = values[:-1], values[1:]
        valid = previous != 0
        if valid.any():
            with np.errstate(over="ignore", invalid="ignore"):
                changes = (current[valid] - previous[valid]) / np.abs(previous[valid])
            growth = float(np.mean(changes))
        else:
            growth = 0.0

    return growth if math.isfinite(growth) else 0.0


def clamp_growth(growth: float, floor: float, cap: float) -> float:
    return max(floor, min(cap, growth))


class DcfProjector:
    """Project a clamped growth path and derive total and per-share intrinsic value."""

    def __init__(self, assumptions: Optional[DcfAssumptions] = None) -> None:
        self._assumptions = assumptions or DcfAssumptions()

    @property
    def assumptions(self) -> DcfAssumptions:
        return self._assumptions

    def project(
        self,
        ocf: MetricSeries,
        capex: MetricSeries,
        shares_outstanding: Optional[float] = None,
    ) -> DcfResult:
        fcf = fcf_proxy_series(ocf, capex)
        if len(fcf) < self._assumptions.min_history:
            logger.debug("DCF skipped: %d cash-flow periods, need %d", len(fcf), self._assumptions.min_history)
            return DcfResult.not_possible()

        raw_growth = estimate_growth(fcf)
        growth = clamp_growth(raw_growth, self._assumptions.growth_floor, self._assumptions.growth_cap)
        if growth != raw_growth:
            logger.debug("DCF growth %.4f clamped to %.4f", raw_growth, growth)
        return self.project_from(fcf[0], growth, historical_years=len(fcf), shares_outstanding=shares_outstanding)

    def project_from(
        self,
        base_fcf: float,
        growth: float,
        *,
        historical_years: int,
        shares_outstanding: Optional[float] = None,
    ) -> DcfResult:
        """Run the projection from an already estimated growth rate."""
        a = self._assumptions
        years = np.arange(1, a.projection_years + 1)
        with np.errstate(over="ignore", invalid="ignore"):
            cash_flows = base_fcf * (1.0 + growth) ** years
            discounted = cash_flows / (1.0 + a.discount_rate) ** years
            pv = float(discounted.sum())

        terminal_value = float(cash_flows[-1]) * (1.0 + a.terminal_growth) / (a.discount_rate - a.terminal_growth)
        pv_terminal = terminal_value / (1.0 + a.discount_rate) ** a.projection_years
        intrinsic_total = pv + pv_terminal
        if not math.isfinite(intrinsic_total):
            logger.debug("DCF dropped: intrinsic total %s from base FCF %s", intrinsic_total, base_fcf)
            return DcfResult.not_possible()

        per_share: Optional[float] = None
        if shares_outstanding is not None and shares_outstanding > 0:
            per_share = intrinsic_total / shares_outstanding
            if not math.isfinite(per_share):
                logger.debug("DCF dropped: per-share value %s for %s shares", per_share, shares_outstanding)
                return DcfResult.not_possible()

        projections = [
            DcfProjection(year=int(year), fcf=float(cf), pv_year=float(pv_year))
            for year, cf, pv_year in zip(years, cash_flows, discounted)
        ]
        return DcfResult(
            possible=True,
            historical_years=historical_years,
            fcf_growth=growth,
            discount_rate=a.discount_rate,
            terminal_growth=a.terminal_growth,
            projections=projections,
            pv=pv,
            pv_terminal=pv_terminal,
            intrinsic_total=intrinsic_total,
            intrinsic_per_share=per_share,
        )
