"""CLI command definitions for the stock valuation tool."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from stock_valuation.config import Config
from stock_valuation.domain.services.line_items import series_frame
from stock_valuation.settings.loader import load_settings
from stock_valuation.utils.logging import configure_logging
from stock_valuation.workflows.graph import ValuationWorkflow, expert_payload, scorecard_payload
from stock_valuation.workflows.state import ValuationState

console = Console()
app = typer.Typer(help="Ingest company market data and value stocks from the terminal.")


@dataclass
class AppContext:
    """Holds reusable process-wide objects for CLI commands."""

    config: Config
    workflow: ValuationWorkflow


def _init_context(debug_override: Optional[bool] = None) -> AppContext:
    """Create a context with configuration, logging, and workflow wiring."""
    config = load_settings(debug_override)
    configure_logging(debug=config.debug)
    workflow = ValuationWorkflow(config=config)
    return AppContext(config=config, workflow=workflow)


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Optional[bool] = typer.Option(
        None,
        "--debug/--no-debug",
        help="Temporarily toggle verbose logging without touching environment variables.",
    ),
) -> None:
    """Attach the lazily constructed application context to Typer."""
    try:
        ctx.obj = _init_context(debug_override=debug)
    except ValueError as exc:
        console.print(f"[bold red]Invalid configuration: {exc}[/bold red]")
        raise typer.Exit(code=1)
    ctx.call_on_close(ctx.obj.workflow.close)


@app.command()
def ingest(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Company name to query on the market data API."),
) -> None:
    """Fetch a company snapshot from the market data API and store it in SQLite."""
    context: AppContext = ctx.obj
    with console.status(f"[bold cyan]Fetching market data for {name}..."):
        result = context.workflow.ingest(name)

    if result.get("errors"):
        _print_errors(result)
        raise typer.Exit(code=1)
    console.print(f"[bold green]Market data saved successfully[/bold green] (companyId={result['ingested_company_id']})")


@app.command()
def company(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Full or partial company name."),
    emit_json: bool = typer.Option(False, "--json", help="Print the full profile as JSON."),
) -> None:
    """Show the stored profile of a company."""
    context: AppContext = ctx.obj
    profile = context.workflow.company_profile(name)
    if profile is None:
        console.print(f"[bold red]Company not found: {name}[/bold red]")
        raise typer.Exit(code=1)

    if emit_json:
        typer.echo(json.dumps(profile, default=str, indent=2, ensure_ascii=False))
        return

    info = profile["company"]
    table = Table(title=info["name"], show_header=True, header_style="bold magenta")
    table.add_column("Key")
    table.add_column("Value")
    for label, key in (
        ("Industry", "industry"),
        ("ISIN", "isin"),
        ("BSE", "bse_code"),
        ("NSE", "nse_code"),
        ("Year High", "year_high"),
        ("Year Low", "year_low"),
    ):
        table.add_row(label, _fmt(info.get(key)))
    for price in profile["prices"]:
        table.add_row(f"Price ({price['exchange']})", _fmt(price.get("price")))
    table.add_row("Officers", str(len(profile["officers"])))
    table.add_row("Peers", str(len(profile["peers"])))
    table.add_row("Statements", str(len(profile["financialStatements"])))
    console.print(table)


@app.command()
def valuation(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Full or partial company name."),
    emit_json: bool = typer.Option(False, "--json", help="Print the scorecard payload as JSON."),
) -> None:
    """Score the peer-table ratios and price range of a stored company."""
    context: AppContext = ctx.obj
    result = context.workflow.run(name)
    payload = scorecard_payload(result)
    if payload is None:
        _print_errors(result)
        raise typer.Exit(code=1)

    if emit_json:
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    console.rule(f"Valuation scorecard for {payload['company']}")
    console.print(f"Latest price: {_fmt(payload['latestPrice'])}")
    console.print(f"Verdict: [bold]{payload['valuation']}[/bold] (score {payload['score']})")
    _print_checklist(payload["checklist"])


@app.command("expert-valuation")
def expert_valuation(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Full or partial company name."),
    emit_json: bool = typer.Option(False, "--json", help="Print the expert valuation payload as JSON."),
    discount_rate: Optional[float] = typer.Option(None, "--discount-rate", help="Override DCF discount rate (e.g., 0.09)."),
    terminal_growth: Optional[float] = typer.Option(
        None, "--terminal-growth", help="Override DCF terminal growth (e.g., 0.025)."
    ),
    state_path: Optional[Path] = typer.Option(
        None, "--save-state", help="Persist the merged workflow state to this JSON file."
    ),
) -> None:
    """Run ratios, Piotroski score and DCF over stored statements and print a verdict."""
    context: AppContext = ctx.obj
    dcf_overrides = {
        key: value
        for key, value in {"discount_rate": discount_rate, "terminal_growth": terminal_growth}.items()
        if value is not None
    }

    with console.status("[bold cyan]Running valuation workflow..."):
        result = context.workflow.run(name, dcf_overrides=dcf_overrides or None)

    if state_path is not None:
        context.workflow.persist_state(result, state_path)
        console.print(f"State saved to {state_path}")

    payload = expert_payload(result)
    if payload is None:
        _print_errors(result)
        raise typer.Exit(code=1)

    if emit_json:
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    _print_expert_summary(result, payload)


@app.command()
def plan(ctx: typer.Context) -> None:
    """Display the high-level workflow path for quick operator reference."""
    context: AppContext = ctx.obj
    table = Table(title="Workflow Stages")
    table.add_column("Step", style="cyan")
    table.add_column("Description")

    for idx, step in enumerate(context.workflow.describe_stages(), start=1):
        table.add_row(str(idx), step)

    console.print(table)


def _print_errors(state: ValuationState) -> None:
    console.print("[bold red]Workflow completed with errors:[/bold red]")
    for issue in state.get("errors", []):
        console.print(f"- {issue}")


def _print_checklist(lines: List[str]) -> None:
    for line in lines:
        console.print(f"  {line}", markup=False)


def _print_expert_summary(state: ValuationState, payload: Dict[str, Any]) -> None:
    """Pretty-print metrics, series and the verdict for operators."""
    recommendation = payload["valuationRecommendation"]
    console.rule(f"Expert valuation for {payload['company']['name']}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_column("Tier")
    for metric, value in payload["metrics"].items():
        table.add_row(metric, _fmt(value), payload["tiers"].get(metric, ""))
    console.print(table)

    frame = series_frame(state["expert_valuation"].series)
    history = Table(title="Resolved series (0 = latest)", show_header=True)
    history.add_column("Metric")
    for period in frame.index:
        history.add_column(str(period), justify="right")
    for metric in frame.columns:
        history.add_row(metric, *(_fmt(v) for v in frame[metric].tolist()))
    console.print(history)

    _print_checklist(payload["checklist"])
    console.print(f"Verdict: [bold]{recommendation['verdict']}[/bold]")
    for reason in recommendation["reasons"]:
        console.print(f"  {reason}", markup=False)


def _fmt(value: Any) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, float):
        if math.isnan(value):
            return "N/A"
        return f"{value:,.2f}"
    return str(value)
