"""API schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from claimrisk.models.domain import ScoringResult


class ScoreResponse(BaseModel):
    claim_id: Optional[str]
    status: str
    ar_days: Optional[int]
    denial_probability: Optional[float] = Field(None, ge=0.0, le=1.0)
    probability_available: bool
    risk_band: Optional[str] = None
    reason: Optional[str] = None
    errors: dict[str, str] = Field(default_factory=dict)
    encoder_version: Optional[str] = None
    model_id: Optional[str] = None

    @classmethod
    def from_result(cls, result: ScoringResult) -> "ScoreResponse":
        return cls(
            claim_id=result.claim_id,
            status=result.status.value,
            ar_days=result.ar_days,
            denial_probability=result.denial_probability,
            probability_available=result.probability_available,
            risk_band=result.risk_band,
            reason=result.reason,
            errors=dict(result.errors),
            encoder_version=result.encoder_version,
            model_id=result.model_id,
        )


class CurrentVersionResponse(BaseModel):
    published: bool
    encoder_version: Optional[str] = None
    model_id: Optional[str] = None


class ModelOut(BaseModel):
    model_id: str
    encoder_version: str
    dataset_name: str
    created_at: Optional[datetime]
    metrics: Optional[dict[str, Any]]


class ModelListResponse(BaseModel):
    models: list[ModelOut]


class HolidayOut(BaseModel):
    observed_date: date
    name: str


class HolidaysResponse(BaseModel):
    year: int
    holidays: list[HolidayOut]


class BusinessDaysRequest(BaseModel):
    start: date
    end: date


class BusinessDaysResponse(BaseModel):
    start: date
    end: date
    business_days: int
