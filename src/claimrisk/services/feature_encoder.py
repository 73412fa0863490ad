"""Deterministic claim feature encoding shared by training and scoring."""

from __future__ import annotations

import hashlib
import json
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from claimrisk.errors import EmptyTrainingSet, SchemaMismatch
from claimrisk.models.domain import ClaimRecord, EncoderState, FeatureVector


FEATURE_SCHEMA_VERSION = "v1"

DEFAULT_NUMERIC_FIELDS: Tuple[str, ...] = (
    "billed_amount",
    "submission_lag_days",
    "procedure_count",
    "diagnosis_count",
)

DEFAULT_CATEGORICAL_FIELDS: Tuple[str, ...] = (
    "payer_id",
    "primary_procedure",
    "place_of_service",
)

# Outcome fields that must never become model inputs.
EXCLUDED_FIELDS = frozenset({"denied", "paid_amount", "payment_date", "claim_id"})

ATTRIBUTE_PREFIX = "attributes."


def _numeric_extractors() -> Dict[str, Callable[[ClaimRecord], Optional[float]]]:
    return {
        "billed_amount": lambda c: c.billed_amount,
        "submission_lag_days": lambda c: (
            float((c.submission_date - c.service_date).days)
            if c.submission_date is not None and c.service_date is not None
            else None
        ),
        "procedure_count": lambda c: float(len(c.procedure_codes)) if c.procedure_codes is not None else None,
        "diagnosis_count": lambda c: float(len(c.diagnosis_codes)) if c.diagnosis_codes is not None else None,
    }


NUMERIC_EXTRACTORS = _numeric_extractors()


def _categorical_value(claim: ClaimRecord, field_name: str) -> Optional[str]:
    if field_name.startswith(ATTRIBUTE_PREFIX):
        key = field_name[len(ATTRIBUTE_PREFIX):]
        if key not in claim.attributes:
            return None
        value = claim.attributes[key]
    elif field_name == "primary_procedure":
        value = claim.primary_procedure
    else:
        value = getattr(claim, field_name, None)
    if value is None:
        return None
    return str(value).strip()


class FeatureEncoder:
    """
    Turns claims into fixed-width numeric vectors.

    `fit` is the only place parameters are learned; `transform` and
    `transform_many` apply a frozen EncoderState and never change it.
    """

    def __init__(
        self,
        numeric_fields: Sequence[str] = DEFAULT_NUMERIC_FIELDS,
        categorical_fields: Sequence[str] = DEFAULT_CATEGORICAL_FIELDS,
        schema_version: str = FEATURE_SCHEMA_VERSION,
    ):
        leaked = (set(numeric_fields) | set(categorical_fields)) & EXCLUDED_FIELDS
        if leaked:
            raise ValueError(f"Outcome fields cannot be used as features: {sorted(leaked)}")
        unknown = [f for f in numeric_fields if f not in NUMERIC_EXTRACTORS]
        if unknown:
            raise ValueError(f"Unknown numeric fields: {unknown}")
        self.numeric_fields = tuple(numeric_fields)
        self.categorical_fields = tuple(categorical_fields)
        self.schema_version = schema_version

    # -- raw extraction -------------------------------------------------

    @staticmethod
    def _raw_numeric(claim: ClaimRecord, fields: Sequence[str]) -> List[float]:
        values = []
        for name in fields:
            extractor = NUMERIC_EXTRACTORS.get(name)
            if extractor is None:
                raise SchemaMismatch(f"Unknown numeric field in encoder schema: {name}")
            value = extractor(claim)
            if value is None:
                raise SchemaMismatch(f"Claim {claim.claim_id} is missing numeric field {name}")
            values.append(float(value))
        return values

    @staticmethod
    def _raw_categorical(claim: ClaimRecord, fields: Sequence[str]) -> List[str]:
        values = []
        for name in fields:
            value = _categorical_value(claim, name)
            if value is None:
                raise SchemaMismatch(f"Claim {claim.claim_id} is missing categorical field {name}")
            values.append(value)
        return values

    # -- fit ------------------------------------------------------------

    def fit(self, claims: Iterable[ClaimRecord]) -> EncoderState:
        claims = list(claims)
        if not claims:
            raise EmptyTrainingSet("Cannot fit an encoder on zero claims")

        numeric = np.asarray(
            [self._raw_numeric(c, self.numeric_fields) for c in claims],
            dtype=float,
        ).reshape(len(claims), len(self.numeric_fields))
        means = numeric.mean(axis=0) if len(self.numeric_fields) else np.zeros(0)
        stds = numeric.std(axis=0) if len(self.numeric_fields) else np.zeros(0)
        scales = np.where(stds > 0, stds, 1.0)

        vocabularies: Dict[str, Tuple[str, ...]] = {}
        seen: Dict[str, set] = {f: set() for f in self.categorical_fields}
        for c in claims:
            for name, value in zip(self.categorical_fields, self._raw_categorical(c, self.categorical_fields)):
                if value:
                    seen[name].add(value)
        for name in self.categorical_fields:
            vocabularies[name] = tuple(sorted(seen[name]))

        params = {
            "schema_version": self.schema_version,
            "numeric_fields": list(self.numeric_fields),
            "categorical_fields": list(self.categorical_fields),
            "vocabularies": {k: list(v) for k, v in vocabularies.items()},
            "means": [float(m) for m in means],
            "scales": [float(s) for s in scales],
            "n_records": len(claims),
        }
        digest = hashlib.sha256(json.dumps(params, sort_keys=True).encode("utf-8")).hexdigest()

        return EncoderState(
            version=f"enc-{digest[:16]}",
            schema_version=self.schema_version,
            numeric_fields=self.numeric_fields,
            categorical_fields=self.categorical_fields,
            vocabularies=vocabularies,
            means=tuple(params["means"]),
            scales=tuple(params["scales"]),
            n_records=len(claims),
        )

    # -- transform ------------------------------------------------------

    @staticmethod
    def transform_many(claims: Sequence[ClaimRecord], state: EncoderState) -> np.ndarray:
        """Encode claims into a (n_claims, state.width) matrix."""
        n_numeric = len(state.numeric_fields)
        out = np.zeros((len(claims), state.width), dtype=float)
        if not claims:
            return out

        means = np.asarray(state.means, dtype=float)
        scales = np.asarray(state.scales, dtype=float)
        raw = np.asarray(
            [FeatureEncoder._raw_numeric(c, state.numeric_fields) for c in claims],
            dtype=float,
        ).reshape(len(claims), n_numeric)
        out[:, :n_numeric] = (raw - means) / scales

        offsets: Dict[str, int] = {}
        col = n_numeric
        for name in state.categorical_fields:
            offsets[name] = col
            col += len(state.vocabularies[name])

        index = {
            name: {cat: i for i, cat in enumerate(state.vocabularies[name])}
            for name in state.categorical_fields
        }
        for row, claim in enumerate(claims):
            values = FeatureEncoder._raw_categorical(claim, state.categorical_fields)
            for name, value in zip(state.categorical_fields, values):
                pos = index[name].get(value)
                # Unseen categories leave the whole block at zero.
                if pos is not None:
                    out[row, offsets[name] + pos] = 1.0
        return out

    @staticmethod
    def transform(claim: ClaimRecord, state: EncoderState) -> FeatureVector:
        row = FeatureEncoder.transform_many([claim], state)[0]
        return FeatureVector(
            encoder_version=state.version,
            names=state.feature_names,
            values=tuple(float(v) for v in row),
        )
