"""CLI command for offline encoder fitting and model training."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import sessionmaker

from claimrisk.db.engine import build_engine
from claimrisk.db.init_db import ensure_db
from claimrisk.errors import EmptyTrainingSet, SchemaMismatch
from claimrisk.services.model_training import TrainingPipeline

console = Console()


def train_model_cmd(
    dataset: Path = typer.Option(..., help="Path to labeled claims CSV"),
    model_id: str = typer.Option(..., help="Model ID (e.g., gbt_v1)"),
    split_ratio: float = typer.Option(0.8, help="Train/val split ratio"),
) -> None:
    """Fit the encoder, train a denial model and register both."""
    engine = build_engine()
    ensure_db(engine)
    SessionLocal = sessionmaker(bind=engine)

    try:
        with SessionLocal() as session:
            pipeline = TrainingPipeline(session)
            pair = pipeline.train_and_register(
                dataset_path=dataset,
                dataset_name=dataset.stem,
                model_id=model_id,
                split_ratio=split_ratio,
            )
    except (EmptyTrainingSet, SchemaMismatch) as e:
        console.print(f"[red]✗[/red] Error: {e}")
        raise typer.Exit(1)

    metrics = pair.artifact.metrics.get("validation") or pair.artifact.metrics.get("train", {})
    table = Table(title=f"Trained Model: {pair.artifact.model_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("encoder_version", pair.encoder.version)
    table.add_row("features", str(len(pair.artifact.feature_names)))
    table.add_row("trees", str(len(pair.artifact.trees)))
    for name in ("n", "positive_rate", "accuracy", "recall", "auroc", "brier"):
        value = metrics.get(name)
        table.add_row(name, "-" if value is None else f"{value:.4f}" if isinstance(value, float) else str(value))
    console.print(table)


if __name__ == "__main__":
    typer.run(train_model_cmd)
