"""Tests for the offline training pipeline."""

import numpy as np
import pytest

from claimrisk.errors import EmptyTrainingSet
from claimrisk.services.feature_encoder import FeatureEncoder
from claimrisk.services.model_registry import ModelRegistry
from claimrisk.services.model_training import (
    TrainingPipeline,
    evaluate,
    load_claims_csv,
    split_train_val,
)
from claimrisk.services.synthetic import write_claims_csv


def test_split_is_deterministic(synthetic_rows):
    a_train, a_val = split_train_val(synthetic_rows, 0.8, seed=1)
    b_train, b_val = split_train_val(synthetic_rows, 0.8, seed=1)
    assert [r.claim.claim_id for r in a_train] == [r.claim.claim_id for r in b_train]
    assert len(a_train) == 480 and len(a_val) == 120


def test_evaluate_perfect_ranking():
    probs = np.array([0.1, 0.2, 0.8, 0.9])
    y = np.array([0.0, 0.0, 1.0, 1.0])
    metrics = evaluate(probs, y)
    assert metrics["accuracy"] == 1.0
    assert metrics["auroc"] == pytest.approx(1.0)
    assert metrics["f1"] == 1.0


def test_evaluate_auroc_with_ties():
    probs = np.array([0.5, 0.5, 0.5, 0.5])
    y = np.array([0.0, 1.0, 0.0, 1.0])
    assert evaluate(probs, y)["auroc"] == pytest.approx(0.5)


def test_pipeline_reports_validation_metrics(trained_pair):
    metrics = trained_pair.artifact.metrics
    assert metrics["validation"]["n"] == 120
    assert metrics["validation"]["auroc"] > 0.9
    assert trained_pair.artifact.encoder_version == trained_pair.encoder.version
    importance = metrics["feature_importance"]
    assert max(importance, key=importance.get) == "billed_amount"


def test_pipeline_requires_rows():
    with pytest.raises(EmptyTrainingSet):
        TrainingPipeline().fit_and_train([], model_id="empty")


def test_load_claims_csv_skips_unlabeled_rows(tmp_path, synthetic_rows):
    path = write_claims_csv(synthetic_rows[:20], tmp_path / "claims.csv")
    with path.open("a", encoding="utf-8") as f:
        f.write("X1,2024-01-02,2024-01-03,UHC,99213,I10,100.00,11,,maybe,\n")

    rows = load_claims_csv(path)
    assert len(rows) == 20
    loaded, original = rows[0].claim, synthetic_rows[0].claim
    assert loaded.claim_id == original.claim_id
    assert loaded.service_date == original.service_date
    assert loaded.procedure_codes == original.procedure_codes
    assert loaded.billed_amount == pytest.approx(original.billed_amount)
    assert rows[0].denied == synthetic_rows[0].denied


def test_submit_publishes_only_after_training(synthetic_rows, fast_params):
    registry = ModelRegistry()
    pipeline = TrainingPipeline(encoder=FeatureEncoder(), params=fast_params)
    try:
        future = pipeline.submit(synthetic_rows, model_id="gbt_bg", registry=registry)
        pair = future.result(timeout=120)
    finally:
        pipeline.shutdown()
    assert registry.current_version() == (pair.encoder.version, "gbt_bg")
