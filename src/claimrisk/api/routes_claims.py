"""Claim scoring API routes."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from claimrisk.api.deps import get_orchestrator
from claimrisk.api.schemas import ScoreResponse
from claimrisk.models.domain import ScoringStatus
from claimrisk.services.scoring import ScoringOrchestrator

router = APIRouter(prefix="/claims", tags=["claims"])


@router.post(
    "/score",
    response_model=ScoreResponse,
    responses={422: {"model": ScoreResponse}},
)
def score_claim(
    payload: dict[str, Any] = Body(...),
    as_of: Optional[date] = Query(None, description="Aging end date for unpaid claims (defaults to today)"),
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    result = orchestrator.score(payload, as_of=as_of)
    body = ScoreResponse.from_result(result)
    if result.status is ScoringStatus.REJECTED:
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))
    return body
