"""Claim scoring orchestration: AR aging plus bounded denial-risk inference."""

from __future__ import annotations

import logging
import math
from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import date
from typing import Any, Callable, Mapping, Optional

from claimrisk.config.settings import settings
from claimrisk.errors import ClaimValidationError, InferenceTimeout, SchemaMismatch, VersionMismatch
from claimrisk.models.domain import (
    ClaimRecord,
    DegradedReason,
    FeatureVector,
    ModelArtifact,
    ScoringResult,
    ScoringStatus,
)
from claimrisk.services import denial_model
from claimrisk.services.business_days import BusinessDayCalculator
from claimrisk.services.claim_validation import validate_claim
from claimrisk.services.feature_encoder import FeatureEncoder
from claimrisk.services.model_registry import ModelRegistry

logger = logging.getLogger(__name__)

Predictor = Callable[[FeatureVector, ModelArtifact], float]

HIGH_RISK = 0.6
MEDIUM_RISK = 0.3


def risk_band(probability: float) -> str:
    if probability >= HIGH_RISK:
        return "high"
    if probability >= MEDIUM_RISK:
        return "medium"
    return "low"


class ScoringOrchestrator:
    """
    Synchronous entry point for claim intake.

    Every call ends in exactly one of scored, degraded or rejected. Only the
    prediction step runs off-thread; it is bounded by `timeout_s` and a miss
    degrades the result instead of blocking the caller. Nothing is retried.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        calculator: BusinessDayCalculator,
        predictor: Predictor = denial_model.predict,
        timeout_s: float | None = None,
        executor: Executor | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.registry = registry
        self.calculator = calculator
        self.predictor = predictor
        self.timeout_s = settings.inference_timeout_s if timeout_s is None else timeout_s
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=settings.scoring_workers,
            thread_name_prefix="claimrisk-score",
        )
        self.clock = clock

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False, cancel_futures=True)

    def _predict_bounded(self, vector: FeatureVector, artifact: ModelArtifact) -> float:
        future = self.executor.submit(self.predictor, vector, artifact)
        try:
            return future.result(timeout=self.timeout_s)
        except FuturesTimeout as e:
            future.cancel()
            raise InferenceTimeout(
                f"Prediction for model {artifact.model_id} exceeded {self.timeout_s:.3f}s"
            ) from e

    def _degraded(
        self,
        claim: ClaimRecord,
        ar_days: int,
        reason: DegradedReason,
        encoder_version: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> ScoringResult:
        logger.warning("Claim %s degraded: %s", claim.claim_id, reason.value)
        return ScoringResult(
            claim_id=claim.claim_id,
            status=ScoringStatus.DEGRADED,
            ar_days=ar_days,
            denial_probability=None,
            reason=reason.value,
            encoder_version=encoder_version,
            model_id=model_id,
        )

    def _rejected(self, claim_id: Any, errors: Mapping[str, str]) -> ScoringResult:
        logger.info("Claim %s rejected: %s", claim_id, sorted(errors))
        return ScoringResult(
            claim_id=None if claim_id is None else str(claim_id),
            status=ScoringStatus.REJECTED,
            reason=ClaimValidationError.code,
            errors=dict(errors),
        )

    def score(
        self,
        payload: Mapping[str, Any] | ClaimRecord,
        as_of: Optional[date] = None,
    ) -> ScoringResult:
        try:
            claim = validate_claim(payload)
        except ClaimValidationError as e:
            claim_id = payload.get("claim_id") if isinstance(payload, Mapping) else None
            return self._rejected(claim_id, e.errors)

        if claim.payment_date is None:
            as_of = as_of or self.clock()
            if as_of < claim.service_date:
                return self._rejected(
                    claim.claim_id,
                    {"service_date": f"cannot be after as-of date {as_of.isoformat()}"},
                )
        ar_days = self.calculator.ar_days(claim, as_of)

        # One read of the published pair per request.
        published = self.registry.current()
        if published is None:
            return self._degraded(claim, ar_days, DegradedReason.MODEL_UNAVAILABLE)

        encoder, artifact = published.encoder, published.artifact
        try:
            vector = FeatureEncoder.transform(claim, encoder)
        except SchemaMismatch as e:
            logger.warning("Feature encoding failed for claim %s: %s", claim.claim_id, e)
            return self._degraded(
                claim, ar_days, DegradedReason.FEATURE_ERROR, encoder.version, artifact.model_id
            )
        if vector.encoder_version != artifact.encoder_version:
            raise VersionMismatch(
                f"Encoder {vector.encoder_version} cannot feed model {artifact.model_id} "
                f"(trained against {artifact.encoder_version})"
            )

        try:
            probability = float(self._predict_bounded(vector, artifact))
        except InferenceTimeout:
            return self._degraded(
                claim, ar_days, DegradedReason.INFERENCE_TIMEOUT, encoder.version, artifact.model_id
            )
        except VersionMismatch:
            raise
        except Exception:
            logger.exception("Prediction failed for claim %s", claim.claim_id)
            return self._degraded(
                claim, ar_days, DegradedReason.INFERENCE_ERROR, encoder.version, artifact.model_id
            )

        if not math.isfinite(probability) or not 0.0 <= probability <= 1.0:
            logger.error("Predictor returned out-of-range probability %r", probability)
            return self._degraded(
                claim, ar_days, DegradedReason.INFERENCE_ERROR, encoder.version, artifact.model_id
            )

        return ScoringResult(
            claim_id=claim.claim_id,
            status=ScoringStatus.SCORED,
            ar_days=ar_days,
            denial_probability=probability,
            risk_band=risk_band(probability),
            encoder_version=encoder.version,
            model_id=artifact.model_id,
        )
