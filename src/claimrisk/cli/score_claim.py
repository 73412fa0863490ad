"""CLI command to score a single claim against a stored model."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import sessionmaker

from claimrisk.config.settings import settings
from claimrisk.db.engine import build_engine
from claimrisk.db.init_db import ensure_db
from claimrisk.errors import ClaimRiskError
from claimrisk.services.business_days import BusinessDayCalculator
from claimrisk.services.holiday_calendar import build_calendar
from claimrisk.services.model_registry import ModelRegistry
from claimrisk.services.scoring import ScoringOrchestrator

console = Console()


def score_claim_cmd(
    claim: Path = typer.Option(..., help="Path to a claim JSON payload"),
    model_id: Optional[str] = typer.Option(None, help="Model ID (defaults to CLAIMRISK_DEFAULT_MODEL_ID)"),
    as_of: Optional[str] = typer.Option(None, help="Aging end date for unpaid claims (YYYY-MM-DD)"),
) -> None:
    """Score one claim: AR business days plus denial probability."""
    payload = json.loads(claim.read_text(encoding="utf-8"))
    registry = ModelRegistry()
    model = model_id or settings.default_model_id

    if model:
        engine = build_engine()
        ensure_db(engine)
        with sessionmaker(bind=engine)() as session:
            try:
                registry.load_from_db(session, model)
            except (ValueError, ClaimRiskError) as e:
                console.print(f"[yellow]![/yellow] Model not loaded: {e}")

    orchestrator = ScoringOrchestrator(
        registry=registry,
        calculator=BusinessDayCalculator(build_calendar(settings.holiday_overrides_path)),
    )
    try:
        result = orchestrator.score(payload, as_of=date.fromisoformat(as_of) if as_of else None)
    except ClaimRiskError as e:
        console.print(f"[red]✗[/red] Error: {e}")
        raise typer.Exit(1)
    finally:
        orchestrator.close()

    table = Table(title=f"Claim {result.claim_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("status", result.status.value)
    table.add_row("ar_days", "-" if result.ar_days is None else str(result.ar_days))
    prob = result.denial_probability
    table.add_row("denial_probability", "unavailable" if prob is None else f"{prob:.4f}")
    table.add_row("risk_band", result.risk_band or "-")
    table.add_row("reason", result.reason or "-")
    for name, message in result.errors.items():
        table.add_row(f"error:{name}", message)
    console.print(table)

    if result.status.value == "rejected":
        raise typer.Exit(1)


if __name__ == "__main__":
    typer.run(score_claim_cmd)
