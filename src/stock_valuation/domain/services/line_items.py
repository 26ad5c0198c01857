"""Fuzzy resolution of loosely labelled line items into numeric time series.

Upstream feeds label the same figure in many ways ("Total Revenue",
"Revenue from Operations", "Net Sales"...). Each metric is therefore looked up
through an ordered list of candidate labels kept in
``data/line_item_labels.json``. Resolution for one statement runs three tiers,
first hit wins:

1. the first item whose ``key_name`` contains a candidate (candidates in priority order);
2. the same scan over ``display_name``;
3. the first item whose key or display text contains any word of any candidate.

The third tier trades precision for availability and accepts false positives.
"""
from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from stock_valuation.domain.models.financials import LineItem, RawValue, Statement
from stock_valuation.domain.models.valuation import MetricSeries

DEFAULT_LABELS_PATH = Path(__file__).resolve().parent.parent / "data" / "line_item_labels.json"

LabelTable = Dict[str, List[str]]

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def load_label_table(path: Optional[Path] = None) -> LabelTable:
    """Read the metric -> candidate labels table (bundled default when ``path`` is None)."""
    source = Path(path) if path is not None else DEFAULT_LABELS_PATH
    raw = json.loads(source.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Label table {source} must map metric names to candidate lists.")
    table: LabelTable = {}
    for metric, candidates in raw.items():
        if isinstance(candidates, str):
            candidates = [candidates]
        table[str(metric)] = [str(c) for c in candidates if str(c).strip()]
    return table


def parse_numeric(value: RawValue) -> Optional[float]:
    """Turn a stored or scraped value into a float, e.g. ``"₹1,234.5cr"`` -> ``1234.5``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    cleaned = _NON_NUMERIC.sub("", str(value))
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def resolve_line_item(line_items: Iterable[LineItem], candidates: Sequence[str]) -> Optional[float]:
    """Return the numeric value best matching ``candidates`` or None when unavailable."""
    items = list(line_items or [])
    if not items:
        return None

    needles = [_lower(c) for c in candidates if _lower(c).strip()]
    for needle in needles:
        by_key = _first(items, lambda it: bool(it.key_name) and needle in _lower(it.key_name))
        value = _value_of(by_key)
        if value is not None:
            return value
        by_display = _first(items, lambda it: bool(it.display_name) and needle in _lower(it.display_name))
        value = _value_of(by_display)
        if value is not None:
            return value

    for needle in needles:
        tokens = needle.split()
        hit = _first(items, lambda it: any(token in _haystack(it) for token in tokens))
        value = _value_of(hit)
        if value is not None:
            return value
    return None


def build_series(statements: Sequence[Statement], candidates: Sequence[str]) -> MetricSeries:
    """Resolve one metric across statements, keeping their (most-recent-first) order."""
    return [resolve_line_item(statement.line_items, candidates) for statement in statements]


def build_series_set(statements: Sequence[Statement], labels: Mapping[str, Sequence[str]]) -> Dict[str, MetricSeries]:
    """Build every metric of a label table at once."""
    return {metric: build_series(statements, candidates) for metric, candidates in labels.items()}


def series_frame(series: Mapping[str, MetricSeries]) -> pd.DataFrame:
    """Tabulate series with one row per period (0 = latest) for display or export."""
    frame = pd.DataFrame({metric: pd.Series(values, dtype="float64") for metric, values in series.items()})
    frame.index.name = "periods_ago"
    return frame


# ----------------------------
# Internal helpers
# ----------------------------

def _lower(text: Optional[str]) -> str:
    return str(text or "").lower()


def _haystack(item: LineItem) -> str:
    return f"{_lower(item.key_name)} {_lower(item.display_name)}"


def _first(items: List[LineItem], predicate: Callable[[LineItem], bool]) -> Optional[LineItem]:
    return next((item for item in items if predicate(item)), None)


def _value_of(item: Optional[LineItem]) -> Optional[float]:
    if item is None or item.value is None or item.value == "":
        return None
    return parse_numeric(item.value)
