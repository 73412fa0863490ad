"""CLI command to list trained models."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import sessionmaker

from claimrisk.db.engine import build_engine
from claimrisk.db.init_db import ensure_db
from claimrisk.repos.model_artifact_repo import ModelArtifactRepository

console = Console()


def list_models_cmd() -> None:
    """List trained models in the registry."""
    engine = build_engine()
    ensure_db(engine)
    SessionLocal = sessionmaker(bind=engine)

    with SessionLocal() as session:
        repo = ModelArtifactRepository(session)
        models = repo.list_models()

    table = Table(title="Trained Models")
    table.add_column("model_id", style="cyan")
    table.add_column("encoder", style="green")
    table.add_column("dataset", style="green")
    table.add_column("created_at", style="green")
    table.add_column("val_auroc", style="magenta")

    for m in models:
        metrics = json.loads(m.metrics_json)
        auroc = (metrics.get("validation") or {}).get("auroc")
        table.add_row(
            m.model_id,
            m.encoder_version,
            m.dataset_name,
            m.created_at.isoformat() if m.created_at else "",
            "-" if auroc is None else f"{auroc:.3f}",
        )

    console.print(table)


if __name__ == "__main__":
    typer.run(list_models_cmd)
