"""LangGraph workflow assembly for the valuation pipeline."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from langgraph.graph import END, StateGraph

from stock_valuation.config import Config
from stock_valuation.domain.services.engine import ValuationEngine
from stock_valuation.domain.services.scorecard import ScorecardAggregator
from stock_valuation.infrastructure.data_providers.market_client import MarketDataClient
from stock_valuation.infrastructure.db.sqlite import SQLiteRepository
from stock_valuation.workflows import context as context_module
from stock_valuation.workflows.blueprint import StageSpec, build_default_stages
from stock_valuation.workflows.nodes import ingest as ingest_node
from stock_valuation.workflows.state import ValuationState

logger = logging.getLogger(__name__)


class ValuationWorkflow:
    """Compose LangGraph nodes into a runnable workflow."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._context = self._build_context()
        self._stages: List[StageSpec] = build_default_stages()
        self._graph = self._build_graph()

    @property
    def context(self) -> context_module.WorkflowContext:
        return self._context

    def _build_context(self) -> context_module.WorkflowContext:
        engine = ValuationEngine.from_config(self._config)
        repository = SQLiteRepository(
            database_uri=f"sqlite:///{self._config.database_path}",
            echo=self._config.sqlite_echo,
        )
        market_client: Optional[MarketDataClient]
        try:
            market_client = MarketDataClient(
                self._config.market_api_base_url,
                self._config.market_api_key,
                verify=self._config.market_api_verify_tls,
                timeout=self._config.market_api_timeout,
            )
        except ValueError as exc:
            logger.debug("Market data client disabled: %s", exc)
            market_client = None

        return context_module.WorkflowContext(
            config=self._config,
            repository=repository,
            market_client=market_client,
            engine=engine,
            scorecard=ScorecardAggregator(),
        )

    def _build_graph(self):
        builder = StateGraph(dict)

        if not self._stages:
            raise RuntimeError("Workflow blueprint is empty; cannot build LangGraph.")

        for stage in self._stages:
            builder.add_node(stage.key, self._wrap(stage.handler))

        # Serialize execution in declared stage order to avoid concurrent state writes.
        builder.set_entry_point(self._stages[0].key)
        for current, nxt in zip(self._stages, self._stages[1:]):
            builder.add_edge(current.key, nxt.key)
        builder.add_edge(self._stages[-1].key, END)

        return builder.compile(checkpointer=None)

    def _wrap(self, func: Callable[[ValuationState, context_module.WorkflowContext], ValuationState]):
        def wrapper(state: Dict[str, Any]) -> Dict[str, Any]:
            return func(state, self._context)

        return wrapper

    def _initial_state(self, name: str) -> ValuationState:
        return {
            "company_name": name,
            "valuation_date": datetime.now(timezone.utc).date().isoformat(),
            "not_found": False,
            "logs": [],
            "errors": [],
            "extras": {},
            "stage_order": [stage.key for stage in self._stages],
        }

    def run(self, name: str, *, dcf_overrides: Optional[Dict[str, float]] = None) -> ValuationState:
        """Execute the valuation workflow for a single company name."""
        initial_state = self._initial_state(name)
        if dcf_overrides:
            initial_state["dcf_overrides"] = dcf_overrides
        result: ValuationState = self._graph.invoke(initial_state)
        return result  # type: ignore[return-value]

    def ingest(self, name: str) -> ValuationState:
        """Fetch a snapshot from the market data API and store it."""
        return ingest_node.run(self._initial_state(name), self._context)

    def company_profile(self, name: str) -> Optional[Dict[str, Any]]:
        return self._context.repository.fetch_company_profile(name)

    def persist_state(self, state: ValuationState, path: Path) -> None:
        """Serialize the workflow state to disk for debugging or auditing."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state, default=_json_serializer, indent=2, ensure_ascii=False)
        path.write_text(payload, encoding="utf-8")

    def describe_stages(self) -> List[str]:
        """Return human-readable workflow stage descriptions."""
        return [f"{stage.key}: {stage.description}" for stage in self._stages]

    def close(self) -> None:
        self._context.close()

    def __enter__(self) -> "ValuationWorkflow":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def expert_payload(state: ValuationState) -> Optional[Dict[str, Any]]:
    """Expert valuation response body, or None when the workflow produced none."""
    result = state.get("expert_valuation")
    if result is None:
        return None
    company = state["company"]
    return {"company": {"name": company.name, "companyId": company.company_id}, **result.to_dict()}


def scorecard_payload(state: ValuationState) -> Optional[Dict[str, Any]]:
    result = state.get("scorecard")
    if result is None:
        return None
    return result.to_dict(state["company"].name)


def _json_serializer(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "tolist"):
        return value.tolist()
    return str(value)
