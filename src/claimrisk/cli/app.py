from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from claimrisk.cli.list_models import list_models_cmd
from claimrisk.cli.score_claim import score_claim_cmd
from claimrisk.cli.train_model import train_model_cmd
from claimrisk.config.settings import settings
from claimrisk.db.engine import build_engine
from claimrisk.db.init_db import init_db
from claimrisk.errors import InvalidRange
from claimrisk.logging_config import setup_logging
from claimrisk.services.business_days import BusinessDayCalculator
from claimrisk.services.holiday_calendar import build_calendar
from claimrisk.services.synthetic import generate_claims, write_claims_csv

app = typer.Typer(help="claimrisk CLI (calendar, training, scoring).")
console = Console()


@app.callback()
def _configure(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level."),
) -> None:
    setup_logging(log_level.upper())


@app.command("init-db")
def init_db_cmd() -> None:
    """Create (or recreate) the encoder/model tables."""
    engine = build_engine()
    init_db(engine)
    typer.echo("✅ Database initialized and reachable.")


@app.command("holidays")
def holidays_cmd(
    year: int = typer.Argument(..., help="Calendar year"),
    overrides: Optional[Path] = typer.Option(None, help="Extra closure dates (JSON list or one per line)"),
) -> None:
    """List observed holidays for a year."""
    calendar = build_calendar(overrides or settings.holiday_overrides_path)
    table = Table(title=f"Observed holidays {year}")
    table.add_column("Date", style="cyan")
    table.add_column("Weekday", style="magenta")
    table.add_column("Holiday", style="green")
    for d, name in calendar.named_holidays(year).items():
        table.add_row(d.isoformat(), d.strftime("%A"), name)
    console.print(table)


@app.command("business-days")
def business_days_cmd(
    start: str = typer.Argument(..., help="Service date (YYYY-MM-DD)"),
    end: str = typer.Argument(..., help="Payment or as-of date (YYYY-MM-DD)"),
    overrides: Optional[Path] = typer.Option(None, help="Extra closure dates (JSON list or one per line)"),
) -> None:
    """Business days elapsed after START up to and including END."""
    calculator = BusinessDayCalculator(build_calendar(overrides or settings.holiday_overrides_path))
    try:
        count = calculator.business_days_elapsed(date.fromisoformat(start), date.fromisoformat(end))
    except (InvalidRange, ValueError) as e:
        console.print(f"[red]✗[/red] Error: {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {count} business days from {start} to {end}")


@app.command("generate-synthetic")
def generate_synthetic_cmd(
    out: Path = typer.Argument(..., help="Output CSV path"),
    n: int = typer.Option(1000, help="Number of claims"),
    denial_rate: float = typer.Option(0.1, help="Share of denied claims"),
    seed: int = typer.Option(7, help="Random seed"),
) -> None:
    """Write a synthetic labeled claims CSV."""
    rows = generate_claims(n, seed=seed, denial_rate=denial_rate)
    path = write_claims_csv(rows, out)
    denied = sum(r.denied for r in rows)
    typer.echo(f"✅ Wrote {len(rows)} claims ({denied} denied) to {path}")


app.command("train-model")(train_model_cmd)
app.command("list-models")(list_models_cmd)
app.command("score-claim")(score_claim_cmd)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
