"""Workflow dependency container."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from stock_valuation.config import Config
from stock_valuation.domain.services.engine import ValuationEngine
from stock_valuation.domain.services.scorecard import ScorecardAggregator
from stock_valuation.infrastructure.data_providers.market_client import MarketDataClient
from stock_valuation.infrastructure.db.sqlite import SQLiteRepository


@dataclass
class WorkflowContext:
    """Holds heavy-weight dependencies shared by LangGraph nodes."""

    config: Config
    repository: SQLiteRepository
    market_client: Optional[MarketDataClient]
    engine: ValuationEngine
    scorecard: ScorecardAggregator

    def close(self) -> None:
        """Release any dependencies that need explicit cleanup."""
        if self.market_client is not None:
            self.market_client.close()
        self.repository.dispose()
