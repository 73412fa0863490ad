from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ClaimRecord:
    claim_id: str
    service_date: date
    submission_date: date
    payer_id: str
    procedure_codes: Tuple[str, ...]
    diagnosis_codes: Tuple[str, ...]
    billed_amount: float
    place_of_service: Optional[str] = None
    payment_date: Optional[date] = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    @property
    def primary_procedure(self) -> Optional[str]:
        return self.procedure_codes[0] if self.procedure_codes else None


@dataclass(frozen=True)
class LabeledClaim:
    """A historical claim plus its payer outcome, used only for training."""

    claim: ClaimRecord
    denied: int
    paid_amount: Optional[float] = None


@dataclass(frozen=True)
class FeatureVector:
    encoder_version: str
    names: Tuple[str, ...]
    values: Tuple[float, ...]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class EncoderState:
    """
    Frozen encoding parameters produced by one fit.

    Column order is: numeric fields (in declared order), then one indicator
    column per vocabulary entry for each categorical field (in declared
    order, categories sorted).
    """

    version: str
    schema_version: str
    numeric_fields: Tuple[str, ...]
    categorical_fields: Tuple[str, ...]
    vocabularies: Mapping[str, Tuple[str, ...]]
    means: Tuple[float, ...]
    scales: Tuple[float, ...]
    n_records: int

    @property
    def feature_names(self) -> Tuple[str, ...]:
        names: List[str] = list(self.numeric_fields)
        for field_name in self.categorical_fields:
            names.extend(f"{field_name}={cat}" for cat in self.vocabularies[field_name])
        return tuple(names)

    @property
    def width(self) -> int:
        return len(self.numeric_fields) + sum(
            len(self.vocabularies[f]) for f in self.categorical_fields
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "schema_version": self.schema_version,
            "numeric_fields": list(self.numeric_fields),
            "categorical_fields": list(self.categorical_fields),
            "vocabularies": {k: list(v) for k, v in self.vocabularies.items()},
            "means": list(self.means),
            "scales": list(self.scales),
            "n_records": self.n_records,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EncoderState":
        return cls(
            version=str(data["version"]),
            schema_version=str(data["schema_version"]),
            numeric_fields=tuple(data["numeric_fields"]),
            categorical_fields=tuple(data["categorical_fields"]),
            vocabularies={k: tuple(v) for k, v in data["vocabularies"].items()},
            means=tuple(float(m) for m in data["means"]),
            scales=tuple(float(s) for s in data["scales"]),
            n_records=int(data["n_records"]),
        )


@dataclass(frozen=True)
class TreeNode:
    """
    One node of a regression tree.

    Leaves have feature == -1 and carry `value`; internal nodes route rows
    with x[feature] <= threshold to `left`, others to `right`.
    """

    feature: int
    threshold: float
    left: int
    right: int
    value: float

    @property
    def is_leaf(self) -> bool:
        return self.feature < 0


@dataclass(frozen=True)
class ModelArtifact:
    model_id: str
    encoder_version: str
    feature_names: Tuple[str, ...]
    base_score: float
    learning_rate: float
    trees: Tuple[Tuple[TreeNode, ...], ...]
    params: Mapping[str, Any] = field(default_factory=dict)
    metrics: Mapping[str, Any] = field(default_factory=dict)

    def trees_to_list(self) -> List[List[List[float]]]:
        return [
            [[n.feature, n.threshold, n.left, n.right, n.value] for n in tree]
            for tree in self.trees
        ]

    @staticmethod
    def trees_from_list(raw: List[List[List[float]]]) -> Tuple[Tuple[TreeNode, ...], ...]:
        return tuple(
            tuple(
                TreeNode(
                    feature=int(f),
                    threshold=float(t),
                    left=int(lft),
                    right=int(rgt),
                    value=float(v),
                )
                for f, t, lft, rgt, v in tree
            )
            for tree in raw
        )


class ScoringStatus(str, Enum):
    SCORED = "scored"
    DEGRADED = "degraded"
    REJECTED = "rejected"


class DegradedReason(str, Enum):
    MODEL_UNAVAILABLE = "model_unavailable"
    INFERENCE_TIMEOUT = "inference_timeout"
    INFERENCE_ERROR = "inference_error"
    FEATURE_ERROR = "feature_error"


@dataclass(frozen=True)
class ScoringResult:
    claim_id: Optional[str]
    status: ScoringStatus
    ar_days: Optional[int] = None
    denial_probability: Optional[float] = None
    risk_band: Optional[str] = None
    reason: Optional[str] = None
    errors: Mapping[str, str] = field(default_factory=dict)
    encoder_version: Optional[str] = None
    model_id: Optional[str] = None

    @property
    def probability_available(self) -> bool:
        return self.denial_probability is not None
