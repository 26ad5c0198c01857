"""Domain models describing the market data exchanged between services."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple, Union

# Line item values arrive as numbers from storage or as free text from upstream feeds.
RawValue = Union[float, int, Decimal, str, None]


class StatementCategory(str, Enum):
    """Section of the filing a line item belongs to."""

    CASH_FLOW = "CAS"
    BALANCE_SHEET = "BAL"
    INCOME = "INC"


@dataclass(frozen=True)
class LineItem:
    """Single labelled figure from a financial statement."""

    category: StatementCategory
    display_name: Optional[str]
    key_name: Optional[str]
    value: RawValue = None


@dataclass(frozen=True)
class Statement:
    """All line items reported for one fiscal period."""

    line_items: Tuple[LineItem, ...] = ()
    fiscal_year: Optional[int] = None
    end_year: Optional[int] = None
    period_type: Optional[str] = None
    report_type: Optional[str] = None
    statement_id: Optional[int] = None

    def items_for(self, category: StatementCategory) -> List[LineItem]:
        return [item for item in self.line_items if item.category == category]


@dataclass
class Company:
    """Static company metadata plus the trading range used by the scorecard."""

    name: str
    industry: Optional[str] = None
    description: Optional[str] = None
    isin: Optional[str] = None
    bse_code: Optional[str] = None
    nse_code: Optional[str] = None
    year_high: Optional[float] = None
    year_low: Optional[float] = None
    percent_change: Optional[float] = None
    company_id: Optional[int] = None


@dataclass
class Officer:
    """Company officer as listed in the company profile."""

    first_name: Optional[str]
    last_name: Optional[str]
    title: Optional[str] = None
    middle_name: Optional[str] = None
    rank: Optional[int] = None
    since: Optional[str] = None
    age: Optional[int] = None


@dataclass
class PeerComparison:
    """Peer-table row holding the ratios consumed by the valuation scorecard."""

    name: Optional[str] = None
    ticker_id: Optional[str] = None
    pe_ratio: Optional[float] = None
    pb_ratio: Optional[float] = None
    market_cap: Optional[float] = None
    price: Optional[float] = None
    percent_change: Optional[float] = None
    net_change: Optional[float] = None
    roe_5yr: Optional[float] = None
    roe_ttm: Optional[float] = None
    debt_to_equity: Optional[float] = None
    net_profit_margin_5yr: Optional[float] = None
    net_profit_margin_ttm: Optional[float] = None
    dividend_yield: Optional[float] = None
    shares_outstanding: Optional[float] = None
    rating: Optional[str] = None
    year_high: Optional[float] = None
    year_low: Optional[float] = None


@dataclass
class PriceQuote:
    """Latest traded price on one exchange."""

    exchange: str
    price: Optional[float]


@dataclass
class TechnicalPoint:
    """Trailing price reference, e.g. the price N days ago on each exchange."""

    days: Optional[str]
    bse_price: Optional[float] = None
    nse_price: Optional[float] = None


@dataclass
class MarketSnapshot:
    """Everything fetched for one company in a single market data call."""

    company: Company
    officers: List[Officer] = field(default_factory=list)
    peers: List[PeerComparison] = field(default_factory=list)
    prices: List[PriceQuote] = field(default_factory=list)
    technicals: List[TechnicalPoint] = field(default_factory=list)
    statements: List[Statement] = field(default_factory=list)
