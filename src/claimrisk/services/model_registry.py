"""Holds the published (encoder state, model artifact) pair for scoring."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from claimrisk.errors import VersionMismatch
from claimrisk.models.domain import EncoderState, ModelArtifact
from claimrisk.repos.encoder_state_repo import EncoderStateRepository
from claimrisk.repos.model_artifact_repo import ModelArtifactRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedModel:
    """An encoder state and the artifact trained against it."""

    encoder: EncoderState
    artifact: ModelArtifact

    def __post_init__(self) -> None:
        if self.encoder.version != self.artifact.encoder_version:
            raise VersionMismatch(
                f"Model {self.artifact.model_id} was trained against encoder "
                f"{self.artifact.encoder_version}, not {self.encoder.version}"
            )
        if tuple(self.encoder.feature_names) != tuple(self.artifact.feature_names):
            raise VersionMismatch(
                f"Model {self.artifact.model_id} feature schema differs from encoder {self.encoder.version}"
            )

    @property
    def version(self) -> Tuple[str, str]:
        return self.encoder.version, self.artifact.model_id


class ModelRegistry:
    """
    Single published model pair with atomic swap.

    Readers take one reference via `current()` and use it for the whole
    request, so they never observe a mix of two versions.
    """

    def __init__(self, published: Optional[PublishedModel] = None):
        self._published = published
        self._lock = threading.Lock()

    def current(self) -> Optional[PublishedModel]:
        return self._published

    def current_version(self) -> Optional[Tuple[str, str]]:
        published = self._published
        return published.version if published is not None else None

    def publish(self, encoder: EncoderState, artifact: ModelArtifact) -> PublishedModel:
        published = PublishedModel(encoder=encoder, artifact=artifact)
        with self._lock:
            previous = self._published
            self._published = published
        logger.info(
            "Published model %s (encoder %s), replacing %s",
            artifact.model_id,
            encoder.version,
            previous.version if previous else None,
        )
        return published

    def unpublish(self) -> None:
        with self._lock:
            self._published = None
        logger.warning("Model unpublished; scoring will degrade until a new model is published")

    def load_from_db(self, session: Session, model_id: str) -> PublishedModel:
        """Load a persisted artifact and its encoder state, then publish them."""
        artifact = ModelArtifactRepository(session).get_artifact(model_id)
        if artifact is None:
            raise ValueError(f"Model {model_id} not found")
        encoder = EncoderStateRepository(session).get_state(artifact.encoder_version)
        if encoder is None:
            raise VersionMismatch(
                f"Encoder state {artifact.encoder_version} for model {model_id} is not stored"
            )
        return self.publish(encoder, artifact)
