"""Offline encoder fitting, model training and evaluation."""

from __future__ import annotations

import csv
import hashlib
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from sqlalchemy.orm import Session

from claimrisk.config.settings import settings
from claimrisk.errors import ClaimValidationError, EmptyTrainingSet
from claimrisk.models.domain import EncoderState, LabeledClaim, ModelArtifact
from claimrisk.repos.encoder_state_repo import EncoderStateRepository
from claimrisk.repos.model_artifact_repo import ModelArtifactRepository, artifact_to_row
from claimrisk.services import denial_model
from claimrisk.services.claim_validation import validate_claim
from claimrisk.services.denial_model import BoostingParams
from claimrisk.services.feature_encoder import FeatureEncoder
from claimrisk.services.model_registry import ModelRegistry

logger = logging.getLogger(__name__)

ATTRIBUTE_COLUMN_PREFIX = "attr_"


def _label_to_int(raw: str) -> int | None:
    value = raw.strip().lower()
    if value in {"1", "true", "denied", "yes"}:
        return 1
    if value in {"0", "false", "paid", "no"}:
        return 0
    return None


def default_params() -> BoostingParams:
    return BoostingParams(
        n_estimators=settings.n_estimators,
        learning_rate=settings.learning_rate,
        max_depth=settings.max_depth,
        min_samples_leaf=settings.min_samples_leaf,
        subsample=settings.subsample,
        max_bins=settings.max_bins,
        seed=settings.training_seed,
    )


def load_claims_csv(csv_path: str | Path) -> List[LabeledClaim]:
    """
    Read labeled historical claims.

    Required columns: claim_id, service_date, payer_id, procedure_codes
    (';' separated), billed_amount, denied. Optional: submission_date,
    diagnosis_codes, place_of_service, payment_date, paid_amount, and
    attr_<name> columns for extra categorical attributes.
    """
    path = Path(csv_path)
    rows: List[LabeledClaim] = []
    skipped = 0
    with path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for raw in reader:
            label = _label_to_int(str(raw.get("denied", "")))
            if label is None:
                skipped += 1
                continue
            payload = {k: (v if v != "" else None) for k, v in raw.items()}
            payload["attributes"] = {
                k[len(ATTRIBUTE_COLUMN_PREFIX):]: v
                for k, v in raw.items()
                if k.startswith(ATTRIBUTE_COLUMN_PREFIX) and v not in (None, "")
            }
            try:
                claim = validate_claim(payload)
            except ClaimValidationError as e:
                logger.warning("Skipping claim %s: %s", raw.get("claim_id"), e.errors)
                skipped += 1
                continue
            paid = payload.get("paid_amount")
            rows.append(
                LabeledClaim(
                    claim=claim,
                    denied=label,
                    paid_amount=float(paid) if paid is not None else None,
                )
            )
    if skipped:
        logger.info("Skipped %d unusable rows from %s", skipped, path)
    return rows


def dataset_fingerprint(rows: Sequence[LabeledClaim]) -> str:
    digest = hashlib.sha256()
    for r in rows:
        digest.update(f"{r.claim.claim_id}:{r.denied}\n".encode("utf-8"))
    return digest.hexdigest()


def split_train_val(
    rows: List[LabeledClaim],
    split_ratio: float,
    seed: int = 42,
) -> Tuple[List[LabeledClaim], List[LabeledClaim]]:
    rng = np.random.default_rng(seed)
    indices = np.arange(len(rows))
    rng.shuffle(indices)
    n_train = max(1, int(len(rows) * split_ratio))
    n_train = min(n_train, len(rows) - 1) if len(rows) > 1 else len(rows)
    train = [rows[i] for i in indices[:n_train]]
    val = [rows[i] for i in indices[n_train:]]
    return train, val


def evaluate(probs: np.ndarray, y: np.ndarray, threshold: float = 0.5) -> dict:
    preds = (probs >= threshold).astype(int)
    tp = int(np.sum((preds == 1) & (y == 1)))
    tn = int(np.sum((preds == 0) & (y == 0)))
    fp = int(np.sum((preds == 1) & (y == 0)))
    fn = int(np.sum((preds == 0) & (y == 1)))

    precision = tp / (tp + fp) if (tp + fp) else 0.0
    recall = tp / (tp + fn) if (tp + fn) else 0.0
    f1 = (2 * precision * recall / (precision + recall)) if (precision + recall) else 0.0
    accuracy = (tp + tn) / len(y) if len(y) else 0.0
    brier = float(np.mean((probs - y) ** 2)) if len(y) else 0.0

    auroc = None
    if len(set(y.tolist())) >= 2:
        # Rank statistic with average ranks for ties.
        order = np.argsort(probs, kind="mergesort")
        ranks = np.empty(len(probs), dtype=float)
        sorted_probs = probs[order]
        i = 0
        while i < len(sorted_probs):
            j = i
            while j + 1 < len(sorted_probs) and sorted_probs[j + 1] == sorted_probs[i]:
                j += 1
            ranks[order[i : j + 1]] = (i + j) / 2.0 + 1.0
            i = j + 1
        pos = int(np.sum(y == 1))
        neg = len(y) - pos
        auroc = float((np.sum(ranks[y == 1]) - pos * (pos + 1) / 2.0) / (pos * neg))

    return {
        "n": int(len(y)),
        "positive_rate": float(np.mean(y)) if len(y) else 0.0,
        "accuracy": float(accuracy),
        "precision": float(precision),
        "recall": float(recall),
        "f1": float(f1),
        "brier": float(brier),
        "auroc": auroc,
    }


@dataclass(frozen=True)
class TrainedPair:
    encoder: EncoderState
    artifact: ModelArtifact


class TrainingPipeline:
    """
    Fit encoder -> encode -> train -> evaluate.

    Runs outside the scoring pool; `submit` uses its own single worker and
    publishes only a fully trained pair.
    """

    def __init__(
        self,
        session: Session | None = None,
        encoder: FeatureEncoder | None = None,
        params: BoostingParams | None = None,
    ):
        self.session = session
        self.encoder = encoder or FeatureEncoder()
        self.params = params or default_params()
        self._executor: Optional[ThreadPoolExecutor] = None

    def fit_and_train(
        self,
        rows: Sequence[LabeledClaim],
        model_id: str,
        split_ratio: float = 0.8,
    ) -> TrainedPair:
        rows = list(rows)
        if not rows:
            raise EmptyTrainingSet("No labeled claims to train on")

        if split_ratio < 1.0 and len(rows) > 1:
            train_rows, val_rows = split_train_val(rows, split_ratio, seed=self.params.seed)
        else:
            train_rows, val_rows = rows, []

        state = self.encoder.fit([r.claim for r in train_rows])
        X_train = FeatureEncoder.transform_many([r.claim for r in train_rows], state)
        y_train = np.asarray([r.denied for r in train_rows], dtype=float)

        artifact = denial_model.train(
            X_train,
            y_train,
            model_id=model_id,
            encoder_version=state.version,
            feature_names=state.feature_names,
            params=self.params,
        )

        metrics: Dict[str, object] = dict(artifact.metrics)
        metrics["train"] = evaluate(denial_model.predict_many(X_train, artifact), y_train)
        if val_rows:
            X_val = FeatureEncoder.transform_many([r.claim for r in val_rows], state)
            y_val = np.asarray([r.denied for r in val_rows], dtype=float)
            metrics["validation"] = evaluate(denial_model.predict_many(X_val, artifact), y_val)
            logger.info("Validation metrics for %s: %s", model_id, metrics["validation"])

        return TrainedPair(encoder=state, artifact=replace(artifact, metrics=metrics))

    def train_and_register(
        self,
        dataset_path: str | Path,
        dataset_name: str,
        model_id: str,
        split_ratio: float = 0.8,
    ) -> TrainedPair:
        if self.session is None:
            raise RuntimeError("TrainingPipeline requires a valid database session for registration.")

        rows = load_claims_csv(dataset_path)
        pair = self.fit_and_train(rows, model_id=model_id, split_ratio=split_ratio)

        dataset_hash = hashlib.sha256(Path(dataset_path).read_bytes()).hexdigest()
        EncoderStateRepository(self.session).upsert(pair.encoder)
        ModelArtifactRepository(self.session).upsert(
            artifact_to_row(pair.artifact, dataset_name=dataset_name, dataset_hash=dataset_hash)
        )
        logger.info("Registered model %s with encoder %s", model_id, pair.encoder.version)
        return pair

    def submit(
        self,
        rows: Sequence[LabeledClaim],
        model_id: str,
        registry: ModelRegistry | None = None,
        split_ratio: float = 0.8,
    ) -> "Future[TrainedPair]":
        """Train in the background; publish to `registry` once complete."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="claimrisk-train")

        def _run() -> TrainedPair:
            pair = self.fit_and_train(rows, model_id=model_id, split_ratio=split_ratio)
            if registry is not None:
                registry.publish(pair.encoder, pair.artifact)
            return pair

        return self._executor.submit(_run)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
