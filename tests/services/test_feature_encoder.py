"""Tests for claim feature encoding."""

from dataclasses import replace
from datetime import date

import numpy as np
import pytest

from claimrisk.errors import EmptyTrainingSet, SchemaMismatch
from claimrisk.models.domain import ClaimRecord
from claimrisk.services.feature_encoder import FeatureEncoder


def _claim(claim_id="C1", payer="BCBS", amount=100.0, codes=("99213",), place="11", **attrs):
    return ClaimRecord(
        claim_id=claim_id,
        service_date=date(2024, 5, 1),
        submission_date=date(2024, 5, 4),
        payer_id=payer,
        procedure_codes=codes,
        diagnosis_codes=("I10", "E11.9"),
        billed_amount=amount,
        place_of_service=place,
        attributes=attrs,
    )


@pytest.fixture
def claims():
    return [
        _claim("C1", "BCBS", 100.0, ("99213",)),
        _claim("C2", "AETNA", 200.0, ("99214", "93000")),
        _claim("C3", "BCBS", 300.0, ("20610",), place="22"),
    ]


def test_fit_empty_raises():
    with pytest.raises(EmptyTrainingSet):
        FeatureEncoder().fit([])


def test_transform_is_idempotent(claims):
    state = FeatureEncoder().fit(claims)
    first = FeatureEncoder.transform(claims[1], state)
    second = FeatureEncoder.transform(claims[1], state)
    assert first == second
    assert first.encoder_version == state.version
    assert len(first) == state.width == len(state.feature_names)


def test_numeric_standardization(claims):
    state = FeatureEncoder().fit(claims)
    idx = state.numeric_fields.index("billed_amount")
    assert state.means[idx] == pytest.approx(200.0)
    assert state.scales[idx] == pytest.approx(np.std([100.0, 200.0, 300.0]))

    vec = FeatureEncoder.transform(claims[2], state)
    assert vec.values[idx] == pytest.approx((300.0 - 200.0) / state.scales[idx])


def test_constant_numeric_field_uses_unit_scale(claims):
    state = FeatureEncoder().fit(claims)
    # Every claim has two diagnosis codes.
    idx = state.numeric_fields.index("diagnosis_count")
    assert state.scales[idx] == 1.0
    assert FeatureEncoder.transform(claims[0], state).values[idx] == 0.0


def test_bulk_and_single_transform_agree(claims):
    state = FeatureEncoder().fit(claims)
    matrix = FeatureEncoder.transform_many(claims, state)
    for row, claim in zip(matrix, claims):
        assert tuple(row) == FeatureEncoder.transform(claim, state).values


def test_unseen_category_maps_to_zero_block(claims):
    state = FeatureEncoder().fit(claims)
    known = FeatureEncoder.transform(claims[0], state)
    unseen = FeatureEncoder.transform(replace(claims[0], payer_id="NEWPAYER"), state)

    assert len(unseen) == len(known)
    payer_cols = [i for i, n in enumerate(state.feature_names) if n.startswith("payer_id=")]
    assert [unseen.values[i] for i in payer_cols] == [0.0] * len(payer_cols)
    assert sum(known.values[i] for i in payer_cols) == 1.0


def test_vocabulary_frozen_at_fit(claims):
    state = FeatureEncoder().fit(claims)
    assert state.vocabularies["payer_id"] == ("AETNA", "BCBS")
    assert state.vocabularies["primary_procedure"] == ("20610", "99213", "99214")


def test_missing_required_field_raises(claims):
    state = FeatureEncoder().fit(claims)
    with pytest.raises(SchemaMismatch):
        FeatureEncoder.transform(replace(claims[0], place_of_service=None), state)


def test_attribute_fields_are_required_once_in_schema():
    encoder = FeatureEncoder(categorical_fields=("payer_id", "attributes.claim_type"))
    fitted = [_claim("A", claim_type="professional"), _claim("B", claim_type="institutional")]
    state = encoder.fit(fitted)
    assert "attributes.claim_type=professional" in state.feature_names
    with pytest.raises(SchemaMismatch):
        FeatureEncoder.transform(_claim("C"), state)


def test_outcome_fields_cannot_be_features():
    with pytest.raises(ValueError):
        FeatureEncoder(categorical_fields=("payer_id", "denied"))
    with pytest.raises(ValueError):
        FeatureEncoder(numeric_fields=("billed_amount", "paid_amount"))


def test_feature_names_exclude_outcomes(claims):
    names = FeatureEncoder().fit(claims).feature_names
    assert not any(n.startswith(("denied", "paid_amount", "payment_date")) for n in names)


def test_version_is_content_hash(claims):
    a = FeatureEncoder().fit(claims)
    b = FeatureEncoder().fit(list(claims))
    c = FeatureEncoder().fit(claims[:2])
    assert a.version == b.version
    assert a.version != c.version
    assert a.version.startswith("enc-")
