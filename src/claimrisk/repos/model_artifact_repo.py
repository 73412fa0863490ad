"""Model artifact repository."""

from __future__ import annotations

import json
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from claimrisk.db.schema import ModelArtifactRow
from claimrisk.models.domain import ModelArtifact


def artifact_to_row(
    artifact: ModelArtifact,
    dataset_name: str,
    dataset_hash: str,
) -> ModelArtifactRow:
    ensemble = {
        "base_score": artifact.base_score,
        "learning_rate": artifact.learning_rate,
        "trees": artifact.trees_to_list(),
    }
    return ModelArtifactRow(
        model_id=artifact.model_id,
        encoder_version=artifact.encoder_version,
        feature_names_json=json.dumps(list(artifact.feature_names)),
        ensemble_json=json.dumps(ensemble),
        params_json=json.dumps(dict(artifact.params), sort_keys=True),
        metrics_json=json.dumps(dict(artifact.metrics), sort_keys=True),
        dataset_name=dataset_name,
        dataset_hash=dataset_hash,
    )


def row_to_artifact(row: ModelArtifactRow) -> ModelArtifact:
    ensemble = json.loads(row.ensemble_json)
    return ModelArtifact(
        model_id=row.model_id,
        encoder_version=row.encoder_version,
        feature_names=tuple(json.loads(row.feature_names_json)),
        base_score=float(ensemble["base_score"]),
        learning_rate=float(ensemble["learning_rate"]),
        trees=ModelArtifact.trees_from_list(ensemble["trees"]),
        params=json.loads(row.params_json),
        metrics=json.loads(row.metrics_json),
    )


class ModelArtifactRepository:
    """Repository for model_artifacts table operations."""

    def __init__(self, session: Session):
        self.session = session

    def upsert(self, row: ModelArtifactRow) -> ModelArtifactRow:
        self.session.execute(
            delete(ModelArtifactRow).where(ModelArtifactRow.model_id == row.model_id)
        )
        self.session.add(row)
        self.session.commit()
        return row

    def get(self, model_id: str) -> Optional[ModelArtifactRow]:
        return (
            self.session.query(ModelArtifactRow)
            .filter(ModelArtifactRow.model_id == model_id)
            .first()
        )

    def get_artifact(self, model_id: str) -> Optional[ModelArtifact]:
        row = self.get(model_id)
        return row_to_artifact(row) if row is not None else None

    def list_models(self) -> List[ModelArtifactRow]:
        return (
            self.session.query(ModelArtifactRow)
            .order_by(ModelArtifactRow.created_at.desc())
            .all()
        )
