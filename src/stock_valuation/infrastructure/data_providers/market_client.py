"""Thin wrapper around the market data HTTP API with project defaults."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from stock_valuation.domain.errors import MarketDataError

logger = logging.getLogger(__name__)


class MarketDataClient:
    """Encapsulate HTTP client initialization and the stock snapshot query."""

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        *,
        verify: bool = True,
        timeout: float = 30.0,
        max_retries: int = 3,
        throttle_seconds: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError("Market data API base URL is missing; set API_BASE_URL.")
        if not api_key:
            raise ValueError("Market data API key is missing; set API_KEY.")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"x-api-key": api_key, "Accept": "application/json"},
            verify=verify,
            timeout=timeout,
            transport=transport,
        )
        self._max_retries = max(1, max_retries)
        self._throttle_seconds = throttle_seconds

    # ------------------
    # Public API helpers
    # ------------------
    def fetch_stock(self, name: str) -> Dict[str, Any]:
        """Retrieve the full stock snapshot (profile, peers, prices, financials) for a company name."""
        payload = self._get_with_retry("/stock", params={"name": name}, query=name)
        if not isinstance(payload, dict):
            raise MarketDataError(name, "response body is not a JSON object")
        return payload

    def close(self) -> None:
        self._client.close()

    # -----------------
    # Internal helpers
    # -----------------
    def _get_with_retry(self, path: str, *, params: Dict[str, Any], query: str) -> Any:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._client.get(path, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                last_exc = exc
                # Client errors will not change on retry.
                if exc.response.status_code < 500:
                    break
            except (httpx.TransportError, ValueError) as exc:
                last_exc = exc
            if attempt < self._max_retries:
                logger.warning("Market data call failed (attempt %d/%d): %s", attempt, self._max_retries, last_exc)
                time.sleep(self._throttle_seconds * attempt)
        raise MarketDataError(query, str(last_exc) if last_exc else "no response") from last_exc
