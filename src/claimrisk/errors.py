"""Error taxonomy for the claim risk core."""

from __future__ import annotations

from typing import Dict


class ClaimRiskError(Exception):
    """Base class for all claimrisk errors."""

    code = "claimrisk_error"


class InvalidRange(ClaimRiskError):
    """Raised when a date range ends before it starts."""

    code = "invalid_range"


class SchemaMismatch(ClaimRiskError):
    """Raised when a claim lacks a field the encoder schema requires."""

    code = "schema_mismatch"


class EmptyTrainingSet(ClaimRiskError):
    """Raised when fitting or training is attempted with no records."""

    code = "empty_training_set"


class VersionMismatch(ClaimRiskError):
    """Raised when an encoder state and model artifact come from different runs."""

    code = "version_mismatch"


class InferenceTimeout(ClaimRiskError):
    """Raised when a prediction exceeds the configured time bound."""

    code = "inference_timeout"


class ClaimValidationError(ClaimRiskError):
    """
    Structurally invalid claim payload.

    `errors` maps each offending field to a human readable message.
    """

    code = "validation_error"

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid claim payload: {fields}")
