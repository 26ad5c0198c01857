"""Exception types raised by the valuation services."""
from __future__ import annotations

from typing import Any, Dict, Optional


class ValuationError(Exception):
    """Base class carrying a machine-readable code next to the message."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(ValuationError, LookupError):
    """Required input is absent; the invocation stops before any computation."""


class CompanyNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Company not found: {name}",
            error_code="COMPANY_NOT_FOUND",
            details={"name": name},
        )


class StatementsNotFoundError(NotFoundError):
    def __init__(self, company: Optional[str] = None) -> None:
        target = f" for {company}" if company else ""
        super().__init__(
            f"No financial statements found{target}",
            error_code="STATEMENTS_NOT_FOUND",
            details={"company": company},
        )


class MarketDataError(ValuationError):
    """The market data API could not deliver a usable snapshot."""

    def __init__(self, query: str, reason: str) -> None:
        super().__init__(
            f"Market data fetch failed for '{query}': {reason}",
            error_code="MARKET_DATA_UNAVAILABLE",
            details={"query": query, "reason": reason},
        )
