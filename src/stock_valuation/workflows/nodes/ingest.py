"""LangGraph node fetching a market snapshot from the API and caching it in SQLite."""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from stock_valuation.domain.errors import MarketDataError
from stock_valuation.domain.models.financials import (
    Company,
    LineItem,
    MarketSnapshot,
    Officer,
    PeerComparison,
    PriceQuote,
    Statement,
    StatementCategory,
    TechnicalPoint,
)
from stock_valuation.workflows.context import WorkflowContext
from stock_valuation.workflows.state import ValuationState


def run(state: ValuationState, context: WorkflowContext) -> ValuationState:
    """Fetch, normalize and persist one company snapshot."""
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    name = state["company_name"]

    if context.market_client is None:
        errors.append("Market data client is not configured; set API_BASE_URL and API_KEY.")
        return state

    logs.append(f"Ingest -> fetching market snapshot for '{name}'")
    try:
        snapshot = normalize_market_payload(context.market_client.fetch_stock(name), query=name)
    except MarketDataError as exc:
        errors.append(exc.message)
        return state

    company_id = context.repository.save_market_snapshot(snapshot)
    state["ingested_company_id"] = company_id
    logs.append(
        f"Ingest -> saved {snapshot.company.name} as company_id={company_id} "
        f"({len(snapshot.statements)} statements, {len(snapshot.peers)} peers)"
    )
    return state


# -----------------
# Normalization
# -----------------

PEER_FIELD_MAP = {
    "tickerId": "ticker_id",
    "companyName": "name",
    "priceToBookValueRatio": "pb_ratio",
    "priceToEarningsValueRatio": "pe_ratio",
    "marketCap": "market_cap",
    "price": "price",
    "percentChange": "percent_change",
    "netChange": "net_change",
    "returnOnAverageEquity5YearAverage": "roe_5yr",
    "returnOnAverageEquityTrailing12Month": "roe_ttm",
    "ltDebtPerEquityMostRecentFiscalYear": "debt_to_equity",
    "netProfitMargin5YearAverage": "net_profit_margin_5yr",
    "netProfitMarginPercentTrailing12Month": "net_profit_margin_ttm",
    "dividendYieldIndicatedAnnualDividend": "dividend_yield",
    "totalSharesOutstanding": "shares_outstanding",
    "overallRating": "rating",
    "yhigh": "year_high",
    "ylow": "year_low",
}

_PEER_TEXT_FIELDS = {"ticker_id", "name", "rating"}

_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def normalize_market_payload(payload: Dict[str, Any], *, query: str = "") -> MarketSnapshot:
    """Convert the raw stock API JSON into a ``MarketSnapshot``."""
    profile = payload.get("companyProfile") or {}
    company = Company(
        name=str(payload.get("companyName") or "").strip(),
        industry=payload.get("industry"),
        description=profile.get("companyDescription"),
        isin=profile.get("isInId"),
        bse_code=_text(payload.get("exchangeCodeBse")),
        nse_code=_text(payload.get("exchangeCodeNse")),
        year_high=_to_number(payload.get("yearHigh")),
        year_low=_to_number(payload.get("yearLow")),
        percent_change=_to_number(payload.get("percentChange")),
    )
    if not company.name:
        raise MarketDataError(query, "payload has no companyName")

    current = payload.get("currentPrice") or {}
    prices = [PriceQuote(exchange=exchange, price=_to_number(current.get(exchange))) for exchange in ("BSE", "NSE")]

    technicals = [
        TechnicalPoint(
            days=_text(tech.get("days")),
            bse_price=_to_number(tech.get("bsePrice")),
            nse_price=_to_number(tech.get("nsePrice")),
        )
        for tech in _records(payload.get("stockTechnicalData"))
    ]

    return MarketSnapshot(
        company=company,
        officers=_officers(((profile.get("officers") or {}).get("officer"))),
        peers=_peers(((payload.get("peerCompanyList") or {}).get("peerCompany"))),
        prices=prices,
        technicals=technicals,
        statements=[_statement(report) for report in _records(payload.get("financials"))],
    )


def _officers(raw: Any) -> List[Officer]:
    officers: List[Officer] = []
    for officer in _records(raw):
        since = _text(officer.get("since"))
        title = officer.get("title")
        if isinstance(title, dict):
            title = title.get("Value")
        age = _to_number(officer.get("age"))
        rank = _to_number(officer.get("rank"))
        officers.append(
            Officer(
                first_name=officer.get("firstName"),
                middle_name=officer.get("mI"),
                last_name=officer.get("lastName"),
                title=_text(title),
                rank=int(rank) if rank is not None else None,
                # Free-text tenure ("n/a", "2019") is dropped; only dates survive.
                since=since if since and "-" in since else None,
                age=int(age) if age else None,
            )
        )
    return officers


def _peers(raw: Any) -> List[PeerComparison]:
    records = list(_records(raw))
    if not records:
        return []
    frame = pd.DataFrame.from_records(records).rename(columns=PEER_FIELD_MAP)
    frame = frame.reindex(columns=list(PEER_FIELD_MAP.values()))
    for column in frame.columns:
        if column not in _PEER_TEXT_FIELDS:
            frame[column] = pd.to_numeric(frame[column], errors="coerce")
    frame = frame.astype(object).where(frame.notna(), None)
    return [PeerComparison(**row) for row in frame.to_dict(orient="records")]


def _statement(report: Dict[str, Any]) -> Statement:
    sections = report.get("stockFinancialMap") or {}
    items: List[LineItem] = []
    for category in StatementCategory:
        for entry in _records(sections.get(category.value)):
            items.append(
                LineItem(
                    category=category,
                    display_name=entry.get("displayName"),
                    key_name=entry.get("key"),
                    value=_to_number(entry.get("value")),
                )
            )
    cash_flow = list(_records(sections.get(StatementCategory.CASH_FLOW.value)))
    period_type = cash_flow[0].get("periodType") if cash_flow else None
    report_type = str(report.get("Type") or "").strip()
    return Statement(
        line_items=tuple(items),
        fiscal_year=_leading_int(report.get("FiscalYear")),
        end_year=_leading_int(report.get("EndDate")),
        period_type=period_type or None,
        report_type=report_type,
    )


def _records(value: Any) -> Iterable[Dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    return []


def _to_number(value: Any) -> Optional[float]:
    """Numeric value or None; text that does not parse as a number is dropped."""
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number):
        return None
    return float(number)


def _leading_int(value: Any) -> Optional[int]:
    match = _LEADING_INT.match(str(value)) if value is not None else None
    if not match:
        return None
    return int(match.group(1)) or None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
