"""Unit tests for market API payload -> snapshot normalization."""
from __future__ import annotations

import pytest

from stock_valuation.domain.errors import MarketDataError
from stock_valuation.domain.models.financials import StatementCategory
from stock_valuation.workflows.nodes.ingest import normalize_market_payload


def test_company_and_prices(market_payload):
    snapshot = normalize_market_payload(market_payload)
    company = snapshot.company
    assert company.name == "Reliance Industries"
    assert company.isin == "INE002A01018"
    assert company.year_high == 200.0
    assert company.percent_change == -0.5
    assert [(q.exchange, q.price) for q in snapshot.prices] == [("BSE", 110.5), ("NSE", 110.0)]


def test_officers_keep_only_dated_since(market_payload):
    officers = normalize_market_payload(market_payload).officers
    assert officers[0].since == "1977-01-01"
    assert officers[0].title == "Chairman"
    assert officers[0].age == 66
    assert officers[1].since is None
    assert officers[1].age is None


def test_peer_numbers_are_coerced(market_payload):
    peers = normalize_market_payload(market_payload).peers
    assert peers[0].pe_ratio == 12.0
    assert peers[0].shares_outstanding == 10.0
    assert peers[0].rating == "Bullish"
    assert peers[0].dividend_yield is None
    assert peers[1].pe_ratio is None
    assert peers[1].pb_ratio is None


def test_technical_text_becomes_none(market_payload):
    technicals = normalize_market_payload(market_payload).technicals
    assert technicals[1].bse_price == 101.0
    assert technicals[1].nse_price is None


def test_statements_and_line_items(market_payload):
    statements = normalize_market_payload(market_payload).statements
    assert [s.fiscal_year for s in statements] == [2021, 2022, 2023]
    latest = statements[-1]
    assert latest.end_year == 2023
    assert latest.report_type == "Annual"
    assert latest.period_type == "Annual"
    cash = latest.items_for(StatementCategory.CASH_FLOW)
    assert [i.value for i in cash] == [180.0, 30.0]
    assert len(latest.line_items) == 9


def test_missing_company_name_is_rejected(market_payload):
    market_payload["companyName"] = "  "
    with pytest.raises(MarketDataError):
        normalize_market_payload(market_payload, query="reliance")
