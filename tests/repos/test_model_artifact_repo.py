"""Tests for encoder state and model artifact repositories."""

import numpy as np
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from claimrisk.db.schema import Base
from claimrisk.repos.encoder_state_repo import EncoderStateRepository
from claimrisk.repos.model_artifact_repo import ModelArtifactRepository, artifact_to_row
from claimrisk.services import denial_model
from claimrisk.services.feature_encoder import FeatureEncoder


def _session():
    engine = create_engine("duckdb:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    return Session()


def test_upsert_get_list_models(trained_pair):
    session = _session()
    repo = ModelArtifactRepository(session)
    repo.upsert(artifact_to_row(trained_pair.artifact, dataset_name="synthetic", dataset_hash="abc"))
    repo.upsert(artifact_to_row(trained_pair.artifact, dataset_name="synthetic", dataset_hash="def"))

    fetched = repo.get("gbt_test")
    assert fetched is not None
    assert fetched.dataset_hash == "def"
    assert len(repo.list_models()) == 1


def test_stored_pair_predicts_identically(trained_pair, synthetic_rows):
    session = _session()
    EncoderStateRepository(session).upsert(trained_pair.encoder)
    ModelArtifactRepository(session).upsert(
        artifact_to_row(trained_pair.artifact, dataset_name="synthetic", dataset_hash="abc")
    )

    state = EncoderStateRepository(session).get_state(trained_pair.encoder.version)
    artifact = ModelArtifactRepository(session).get_artifact("gbt_test")
    assert state == trained_pair.encoder
    assert artifact.encoder_version == state.version

    claims = [r.claim for r in synthetic_rows[:25]]
    before = denial_model.predict_many(FeatureEncoder.transform_many(claims, trained_pair.encoder), trained_pair.artifact)
    after = denial_model.predict_many(FeatureEncoder.transform_many(claims, state), artifact)
    assert np.array_equal(before, after)


def test_missing_rows_return_none():
    session = _session()
    assert EncoderStateRepository(session).get_state("enc-missing") is None
    assert ModelArtifactRepository(session).get_artifact("nope") is None
