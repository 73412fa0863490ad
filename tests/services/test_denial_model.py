"""Tests for the boosted denial model."""

from dataclasses import replace

import numpy as np
import pytest

from claimrisk.errors import EmptyTrainingSet, VersionMismatch
from claimrisk.services import denial_model
from claimrisk.services.denial_model import BoostingParams, class_weights
from claimrisk.services.feature_encoder import FeatureEncoder
from claimrisk.services.synthetic import denial_threshold, generate_claims


def _encode(rows, state):
    X = FeatureEncoder.transform_many([r.claim for r in rows], state)
    y = np.asarray([r.denied for r in rows], dtype=float)
    return X, y


def _train(rows, params, model_id="gbt"):
    state = FeatureEncoder().fit([r.claim for r in rows])
    X, y = _encode(rows, state)
    artifact = denial_model.train(
        X,
        y,
        model_id=model_id,
        encoder_version=state.version,
        feature_names=state.feature_names,
        params=params,
    )
    return state, artifact


def test_recovers_billed_amount_threshold(fast_params):
    rows = generate_claims(1200, seed=5, denial_rate=0.2)
    train_rows, test_rows = rows[:1000], rows[1000:]
    state, artifact = _train(train_rows, fast_params)

    X_test, y_test = _encode(test_rows, state)
    probs = denial_model.predict_many(X_test, artifact)
    accuracy = float(np.mean((probs >= 0.5) == (y_test == 1)))
    assert accuracy > 0.95


def test_known_denied_claim_scores_high_with_ten_percent_denials(fast_params):
    rows = generate_claims(1000, seed=11, denial_rate=0.1)
    assert sum(r.denied for r in rows) == pytest.approx(100, abs=2)
    state, artifact = _train(rows, fast_params)

    threshold = denial_threshold(np.asarray([r.claim.billed_amount for r in rows]), 0.1)
    held_out = replace(rows[0].claim, claim_id="HELD-OUT", billed_amount=threshold * 3)
    vector = FeatureEncoder.transform(held_out, state)
    assert denial_model.predict(vector, artifact) > 0.5


def test_training_is_reproducible(synthetic_rows, fast_params):
    state_a, a = _train(synthetic_rows, fast_params)
    state_b, b = _train(synthetic_rows, fast_params)
    X, _ = _encode(synthetic_rows[:50], state_a)
    assert state_a.version == state_b.version
    assert np.allclose(denial_model.predict_many(X, a), denial_model.predict_many(X, b), atol=1e-12)


def test_predict_is_pure(trained_pair, synthetic_rows):
    vector = FeatureEncoder.transform(synthetic_rows[0].claim, trained_pair.encoder)
    n_trees = len(trained_pair.artifact.trees)
    p1 = denial_model.predict(vector, trained_pair.artifact)
    p2 = denial_model.predict(vector, trained_pair.artifact)
    assert p1 == p2
    assert 0.0 <= p1 <= 1.0
    assert len(trained_pair.artifact.trees) == n_trees


def test_predict_rejects_foreign_encoder_version(trained_pair, synthetic_rows):
    vector = FeatureEncoder.transform(synthetic_rows[0].claim, trained_pair.encoder)
    foreign = replace(vector, encoder_version="enc-0000000000000000")
    with pytest.raises(VersionMismatch):
        denial_model.predict(foreign, trained_pair.artifact)


def test_balanced_class_weights_equalize_classes():
    y = np.array([1, 0, 0, 0, 0, 0, 0, 0, 0, 0], dtype=float)
    w = class_weights(y, "balanced")
    assert w[y == 1].sum() == pytest.approx(w[y == 0].sum())
    assert np.all(class_weights(y, None) == 1.0)


def test_train_requires_rows():
    with pytest.raises(EmptyTrainingSet):
        denial_model.train(
            np.zeros((0, 2)),
            np.zeros(0),
            model_id="empty",
            encoder_version="enc-x",
            feature_names=["a", "b"],
        )


def test_single_feature_stump():
    X = np.array([[0.0], [1.0], [2.0], [3.0], [4.0], [5.0], [6.0], [7.0]])
    y = np.array([0, 0, 0, 0, 1, 1, 1, 1], dtype=float)
    params = BoostingParams(n_estimators=30, learning_rate=0.3, max_depth=1, min_samples_leaf=1, subsample=1.0)
    artifact = denial_model.train(X, y, model_id="stump", encoder_version="enc-x", feature_names=["x"], params=params)
    assert artifact.trees[0][0].feature == 0
    assert artifact.trees[0][0].threshold == 3.0
    probs = denial_model.predict_many(X, artifact)
    assert np.all(probs[:4] < 0.5) and np.all(probs[4:] > 0.5)
