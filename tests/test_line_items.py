"""Unit tests for label resolution and numeric parsing."""
from __future__ import annotations

import math
from decimal import Decimal

from stock_valuation.domain.models.financials import LineItem, StatementCategory
from stock_valuation.domain.services.line_items import (
    build_series,
    build_series_set,
    load_label_table,
    parse_numeric,
    resolve_line_item,
    series_frame,
)

INC = StatementCategory.INCOME


def test_resolves_display_name_match():
    items = [
        LineItem(INC, "Cost of Revenue", "CostOfRevenue", 400),
        LineItem(INC, "Total Revenue", "TotalRevenue", "1000"),
    ]
    labels = load_label_table()
    assert resolve_line_item(items, labels["revenue"]) == 1000.0


def test_key_name_is_checked_before_display_name():
    items = [
        LineItem(INC, "Turnover", None, 10),
        LineItem(INC, "Sales figure", "net sales", 20),
    ]
    # "net sales" hits the key of the second item before any display name is scanned.
    assert resolve_line_item(items, ["net sales", "turnover"]) == 20.0


def test_word_fallback_when_no_candidate_is_a_substring():
    items = [LineItem(INC, "Income After Tax", "IAT", 42)]
    assert resolve_line_item(items, ["net income", "profit after tax"]) == 42.0


def test_currency_text_is_parsed():
    items = [LineItem(INC, "Total Revenue", None, "₹1,234.5cr")]
    assert resolve_line_item(items, ["total revenue"]) == 1234.5


def test_unresolvable_or_empty_values_are_none():
    assert resolve_line_item([], ["revenue"]) is None
    assert resolve_line_item([LineItem(INC, "Total Revenue", None, "")], ["total revenue"]) is None
    assert resolve_line_item([LineItem(INC, "Dividends", None, 5)], ["total revenue"]) is None


def test_parse_numeric_edge_cases():
    assert parse_numeric(12) == 12.0
    assert parse_numeric("-3.5%") == -3.5
    assert parse_numeric("n/a") is None
    assert parse_numeric(True) is None
    assert parse_numeric(float("nan")) is None
    assert parse_numeric("1.2.3") is None


def test_parse_numeric_accepts_decimals_and_rejects_overflow():
    assert parse_numeric(Decimal("100.25")) == 100.25
    assert parse_numeric(Decimal("1E+400")) is None
    assert parse_numeric(Decimal("NaN")) is None
    assert parse_numeric(10 ** 400) is None


def test_series_has_one_entry_per_statement(statements):
    labels = load_label_table()
    series = build_series(statements, labels["revenue"])
    assert series == [1100.0, 1000.0, 900.0]

    full = build_series_set(statements, labels)
    assert set(full) == set(labels)
    assert all(len(values) == len(statements) for values in full.values())


def test_series_frame_indexes_periods_ago(statements):
    full = build_series_set(statements, load_label_table())
    frame = series_frame(full)
    assert frame.index.name == "periods_ago"
    assert list(frame.index) == [0, 1, 2]
    assert frame.loc[0, "netIncome"] == 150.0
    assert not math.isnan(frame.loc[2, "capex"])
