"""Tests for the LangGraph valuation workflow against a temporary database."""
from __future__ import annotations

import json

import httpx
import pytest

from stock_valuation.config import Config
from stock_valuation.infrastructure.data_providers.market_client import MarketDataClient
from stock_valuation.workflows.graph import ValuationWorkflow, expert_payload, scorecard_payload
from stock_valuation.workflows.nodes.ingest import normalize_market_payload


@pytest.fixture
def workflow(tmp_path):
    config = Config(database_path=tmp_path / "market.db", output_dir=tmp_path / "reports")
    with ValuationWorkflow(config) as wf:
        yield wf


def test_stages_are_linear(workflow):
    stages = workflow.describe_stages()
    assert [s.split(":")[0] for s in stages] == [
        "lookup_company",
        "load_financials",
        "expert_valuation",
        "scorecard",
    ]


def test_run_produces_both_payloads(workflow, market_payload):
    workflow.context.repository.save_market_snapshot(normalize_market_payload(market_payload))
    state = workflow.run("reliance")

    assert state["errors"] == []
    expert = expert_payload(state)
    assert expert["company"]["name"] == "Reliance Industries"
    assert expert["latestPrice"] == 110.0
    assert expert["sharesOutstanding"] == 10.0
    assert expert["valuationRecommendation"]["verdict"] == "Undervalued"

    score = scorecard_payload(state)
    assert score["company"] == "Reliance Industries"
    # PE, PB, ROE, leverage, margin trend and near-low price all score.
    assert score["score"] == 6
    assert score["valuation"] == "Fairly Valued"


def test_unknown_company_stops_early(workflow):
    state = workflow.run("nobody")
    assert state["not_found"] is True
    assert state["errors"] == ["Company not found: nobody"]
    assert expert_payload(state) is None
    assert scorecard_payload(state) is None


def test_dcf_overrides_are_applied(workflow, market_payload):
    workflow.context.repository.save_market_snapshot(normalize_market_payload(market_payload))
    base = workflow.run("reliance")["expert_valuation"]
    tuned = workflow.run("reliance", dcf_overrides={"discount_rate": 0.12})["expert_valuation"]
    assert tuned.dcf.discount_rate == 0.12
    assert tuned.dcf.intrinsic_total < base.dcf.intrinsic_total


def test_invalid_overrides_are_reported(workflow, market_payload):
    workflow.context.repository.save_market_snapshot(normalize_market_payload(market_payload))
    state = workflow.run("reliance", dcf_overrides={"discount_rate": 0.01})
    assert state.get("expert_valuation") is None
    assert state["errors"][0].startswith("Invalid DCF overrides")
    assert state["scorecard"] is not None


def test_ingest_without_client_reports_error(workflow):
    state = workflow.ingest("reliance")
    assert "Market data client is not configured" in state["errors"][0]


def test_ingest_with_client_persists_snapshot(workflow, market_payload):
    workflow.context.market_client = MarketDataClient(
        "https://api.example.com",
        "secret",
        throttle_seconds=0,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=market_payload)),
    )
    state = workflow.ingest("Reliance")
    assert state["errors"] == []
    company = workflow.context.repository.find_company_by_name("reliance")
    assert company.company_id == state["ingested_company_id"]


def test_persist_state_writes_json(workflow, market_payload, tmp_path):
    workflow.context.repository.save_market_snapshot(normalize_market_payload(market_payload))
    state = workflow.run("reliance")
    target = tmp_path / "out" / "state.json"
    workflow.persist_state(state, target)

    saved = json.loads(target.read_text(encoding="utf-8"))
    assert saved["company_name"] == "reliance"
    assert saved["expert_valuation"]["piotroski"]["score"] == 4
    assert saved["scorecard"]["valuation"] == "Fairly Valued"
