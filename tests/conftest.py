"""Shared fixtures: a three-year statement set and a raw market API payload."""
from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from stock_valuation.domain.models.financials import LineItem, Statement, StatementCategory

# (category, display name, key) per metric; display names hit the first candidate label.
LABELS = {
    "revenue": (StatementCategory.INCOME, "Total Revenue", "TotalRevenue"),
    "netIncome": (StatementCategory.INCOME, "Net Income", "NetIncome"),
    "eps": (StatementCategory.INCOME, "Diluted EPS", "DilutedNormalizedEPS"),
    "totalAssets": (StatementCategory.BALANCE_SHEET, "Total Assets", "TotalAssets"),
    "totalEquity": (StatementCategory.BALANCE_SHEET, "Total Equity", "TotalEquity"),
    "totalLiabilities": (StatementCategory.BALANCE_SHEET, "Total Liabilities", "TotalLiabilities"),
    "longTermDebt": (StatementCategory.BALANCE_SHEET, "Long Term Debt", "TotalLongTermDebt"),
    "operatingCashFlow": (StatementCategory.CASH_FLOW, "Cash Flow from Operations", "CashFromOperatingActivities"),
    "capex": (StatementCategory.CASH_FLOW, "Capital Expenditures", "CapitalExpenditures"),
}

# Most recent first.
YEARS: List[Dict[str, Optional[float]]] = [
    {
        "revenue": 1100, "netIncome": 150, "eps": 15, "totalAssets": 2000, "totalEquity": 1000,
        "totalLiabilities": 1000, "longTermDebt": 300, "operatingCashFlow": 180, "capex": 30,
    },
    {
        "revenue": 1000, "netIncome": 120, "eps": 12, "totalAssets": 1800, "totalEquity": 900,
        "totalLiabilities": 900, "longTermDebt": 360, "operatingCashFlow": 150, "capex": 30,
    },
    {
        "revenue": 900, "netIncome": 100, "eps": 10, "totalAssets": 1600, "totalEquity": 800,
        "totalLiabilities": 800, "longTermDebt": 400, "operatingCashFlow": 130, "capex": 30,
    },
]


def make_statement(values: Dict[str, Optional[float]], fiscal_year: Optional[int] = None) -> Statement:
    items = []
    for metric, value in values.items():
        category, display, key = LABELS[metric]
        items.append(LineItem(category=category, display_name=display, key_name=key, value=value))
    return Statement(line_items=tuple(items), fiscal_year=fiscal_year, report_type="Annual")


@pytest.fixture
def statements() -> List[Statement]:
    return [make_statement(values, 2023 - offset) for offset, values in enumerate(YEARS)]


def _section(metrics: List[str], year: Dict[str, Optional[float]]) -> List[dict]:
    return [
        {
            "displayName": LABELS[m][1],
            "key": LABELS[m][2],
            "value": str(year[m]),
            "periodType": "Annual",
        }
        for m in metrics
    ]


@pytest.fixture
def market_payload() -> dict:
    """Raw stock API response in its upstream shape."""
    financials = []
    # Upstream lists the oldest year first.
    for offset, year in reversed(list(enumerate(YEARS))):
        financials.append(
            {
                "FiscalYear": str(2023 - offset),
                "EndDate": f"{2023 - offset}-03-31",
                "Type": " Annual ",
                "stockFinancialMap": {
                    "CAS": _section(["operatingCashFlow", "capex"], year),
                    "BAL": _section(["totalAssets", "totalEquity", "totalLiabilities", "longTermDebt"], year),
                    "INC": _section(["revenue", "netIncome", "eps"], year),
                },
            }
        )
    return {
        "companyName": "Reliance Industries",
        "industry": "Oil & Gas Operations",
        "companyProfile": {
            "companyDescription": "Diversified conglomerate.",
            "isInId": "INE002A01018",
            "officers": {
                "officer": [
                    {
                        "rank": 1,
                        "since": "1977-01-01",
                        "firstName": "Mukesh",
                        "mI": "D",
                        "lastName": "Ambani",
                        "age": "66",
                        "title": {"Value": "Chairman"},
                    },
                    {
                        "rank": 2,
                        "since": "n/a",
                        "firstName": "Nita",
                        "lastName": "Ambani",
                        "title": {"Value": "Director"},
                    },
                ]
            },
        },
        "exchangeCodeBse": "500325",
        "exchangeCodeNse": "RELIANCE",
        "yearHigh": "200",
        "yearLow": "100",
        "percentChange": "-0.5",
        "currentPrice": {"BSE": "110.5", "NSE": "110"},
        "stockTechnicalData": [
            {"days": "5", "bsePrice": "108", "nsePrice": "108.2"},
            {"days": "30", "bsePrice": "101", "nsePrice": "abc"},
        ],
        "peerCompanyList": {
            "peerCompany": [
                {
                    "tickerId": "RELI",
                    "companyName": "Reliance Industries",
                    "priceToBookValueRatio": "0.8",
                    "priceToEarningsValueRatio": 12,
                    "marketCap": "1000000",
                    "price": "110",
                    "returnOnAverageEquity5YearAverage": "14",
                    "returnOnAverageEquityTrailing12Month": "18",
                    "ltDebtPerEquityMostRecentFiscalYear": "0.3",
                    "netProfitMargin5YearAverage": "10",
                    "netProfitMarginPercentTrailing12Month": "12",
                    "totalSharesOutstanding": "10",
                    "overallRating": "Bullish",
                    "yhigh": "200",
                    "ylow": "100",
                },
                {
                    "tickerId": "ONGC",
                    "companyName": "Oil and Natural Gas",
                    "priceToEarningsValueRatio": "-",
                    "totalSharesOutstanding": "1250",
                },
            ]
        },
        "financials": financials,
    }
