"""Model publication API routes."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from claimrisk.api.deps import get_db, get_registry
from claimrisk.api.schemas import CurrentVersionResponse, ModelListResponse, ModelOut
from claimrisk.repos.model_artifact_repo import ModelArtifactRepository
from claimrisk.services.model_registry import ModelRegistry

router = APIRouter(prefix="/models", tags=["models"])


def _current(registry: ModelRegistry) -> CurrentVersionResponse:
    version = registry.current_version()
    if version is None:
        return CurrentVersionResponse(published=False)
    encoder_version, model_id = version
    return CurrentVersionResponse(published=True, encoder_version=encoder_version, model_id=model_id)


@router.get("", response_model=ModelListResponse)
def list_models(session: Session = Depends(get_db)):
    repo = ModelArtifactRepository(session)
    models = [
        ModelOut(
            model_id=m.model_id,
            encoder_version=m.encoder_version,
            dataset_name=m.dataset_name,
            created_at=m.created_at,
            metrics=json.loads(m.metrics_json) if m.metrics_json else None,
        )
        for m in repo.list_models()
    ]
    return ModelListResponse(models=models)


@router.get("/current", response_model=CurrentVersionResponse)
def current_version(registry: ModelRegistry = Depends(get_registry)):
    return _current(registry)


@router.post("/{model_id}/publish", response_model=CurrentVersionResponse)
def publish_model(
    model_id: str,
    session: Session = Depends(get_db),
    registry: ModelRegistry = Depends(get_registry),
):
    try:
        registry.load_from_db(session, model_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _current(registry)
