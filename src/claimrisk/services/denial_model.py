"""Gradient-boosted tree classifier for claim denial risk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from claimrisk.errors import EmptyTrainingSet, VersionMismatch
from claimrisk.models.domain import FeatureVector, ModelArtifact, TreeNode

logger = logging.getLogger(__name__)


def _sigmoid(z: np.ndarray) -> np.ndarray:
    z = np.clip(z, -50, 50)
    return 1.0 / (1.0 + np.exp(-z))


@dataclass(frozen=True)
class BoostingParams:
    n_estimators: int = 100
    learning_rate: float = 0.1
    max_depth: int = 3
    min_samples_leaf: int = 5
    subsample: float = 0.8
    max_bins: int = 32
    l2_reg: float = 1.0
    class_weight: Optional[str] = "balanced"
    seed: int = 42

    def to_dict(self) -> Dict[str, object]:
        return {
            "n_estimators": self.n_estimators,
            "learning_rate": self.learning_rate,
            "max_depth": self.max_depth,
            "min_samples_leaf": self.min_samples_leaf,
            "subsample": self.subsample,
            "max_bins": self.max_bins,
            "l2_reg": self.l2_reg,
            "class_weight": self.class_weight,
            "seed": self.seed,
        }


def class_weights(y: np.ndarray, mode: Optional[str]) -> np.ndarray:
    """
    Per-row weights.

    "balanced" up-weights the positive (denied) class by n_neg / n_pos so
    both classes carry equal total weight.
    """
    weights = np.ones(len(y), dtype=float)
    if mode is None:
        return weights
    if mode != "balanced":
        raise ValueError(f"Unsupported class_weight: {mode}")
    n_pos = float(np.sum(y == 1))
    n_neg = float(np.sum(y == 0))
    if n_pos > 0 and n_neg > 0:
        weights[y == 1] = n_neg / n_pos
    return weights


def _candidate_thresholds(col: np.ndarray, max_bins: int) -> np.ndarray:
    uniq = np.unique(col)
    if len(uniq) <= 1:
        return np.zeros(0, dtype=float)
    if len(uniq) <= max_bins:
        return uniq[:-1]
    qs = np.quantile(col, np.linspace(0.0, 1.0, max_bins + 1)[1:-1])
    qs = np.unique(qs)
    return qs[qs < uniq[-1]]


class _TreeBuilder:
    """Greedy depth-limited regression tree on binned features."""

    def __init__(
        self,
        bins: np.ndarray,
        thresholds: List[np.ndarray],
        params: BoostingParams,
    ):
        self.bins = bins
        self.thresholds = thresholds
        self.params = params
        self.nodes: List[Optional[TreeNode]] = []
        self.gains = np.zeros(bins.shape[1], dtype=float)

    def _score(self, g: float, h: float) -> float:
        return g * g / (h + self.params.l2_reg)

    def _best_split(
        self,
        rows: np.ndarray,
        grad: np.ndarray,
        hess: np.ndarray,
    ) -> Tuple[int, int, float]:
        min_leaf = self.params.min_samples_leaf
        g_rows = grad[rows]
        h_rows = hess[rows]
        g_total = float(np.sum(g_rows))
        h_total = float(np.sum(h_rows))
        parent = self._score(g_total, h_total)

        best = (-1, -1, 0.0)
        for j, thr in enumerate(self.thresholds):
            k = len(thr)
            if k == 0:
                continue
            b = self.bins[rows, j]
            g_left = np.cumsum(np.bincount(b, weights=g_rows, minlength=k + 1))[:k]
            h_left = np.cumsum(np.bincount(b, weights=h_rows, minlength=k + 1))[:k]
            n_left = np.cumsum(np.bincount(b, minlength=k + 1))[:k]
            n_right = len(rows) - n_left
            valid = (n_left >= min_leaf) & (n_right >= min_leaf)
            if not np.any(valid):
                continue
            gain = (
                g_left ** 2 / (h_left + self.params.l2_reg)
                + (g_total - g_left) ** 2 / (h_total - h_left + self.params.l2_reg)
                - parent
            )
            gain = np.where(valid, gain, -np.inf)
            pos = int(np.argmax(gain))
            if gain[pos] > best[2] + 1e-12:
                best = (j, pos, float(gain[pos]))
        return best

    def build(self, rows: np.ndarray, grad: np.ndarray, hess: np.ndarray, depth: int = 0) -> int:
        index = len(self.nodes)
        self.nodes.append(None)

        feature, bin_pos, gain = -1, -1, 0.0
        if depth < self.params.max_depth and len(rows) >= 2 * self.params.min_samples_leaf:
            feature, bin_pos, gain = self._best_split(rows, grad, hess)

        if feature < 0:
            g = float(np.sum(grad[rows]))
            h = float(np.sum(hess[rows]))
            self.nodes[index] = TreeNode(-1, 0.0, -1, -1, -g / (h + self.params.l2_reg))
            return index

        self.gains[feature] += gain
        go_left = self.bins[rows, feature] <= bin_pos
        left = self.build(rows[go_left], grad, hess, depth + 1)
        right = self.build(rows[~go_left], grad, hess, depth + 1)
        threshold = float(self.thresholds[feature][bin_pos])
        self.nodes[index] = TreeNode(feature, threshold, left, right, 0.0)
        return index


def tree_predict(tree: Sequence[TreeNode], X: np.ndarray) -> np.ndarray:
    out = np.zeros(X.shape[0], dtype=float)
    stack = [(0, np.arange(X.shape[0]))]
    while stack:
        node_id, rows = stack.pop()
        if len(rows) == 0:
            continue
        node = tree[node_id]
        if node.is_leaf:
            out[rows] = node.value
            continue
        go_left = X[rows, node.feature] <= node.threshold
        stack.append((node.left, rows[go_left]))
        stack.append((node.right, rows[~go_left]))
    return out


def _raw_margin(X: np.ndarray, artifact: ModelArtifact) -> np.ndarray:
    margin = np.full(X.shape[0], artifact.base_score, dtype=float)
    for tree in artifact.trees:
        margin += artifact.learning_rate * tree_predict(tree, X)
    return margin


def train(
    X: np.ndarray,
    y: np.ndarray,
    *,
    model_id: str,
    encoder_version: str,
    feature_names: Sequence[str],
    params: BoostingParams = BoostingParams(),
) -> ModelArtifact:
    """
    Fit a boosted ensemble on the logistic loss.

    Deterministic for a fixed seed and row order: row subsampling is the
    only source of randomness.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    if X.ndim != 2 or X.shape[0] == 0:
        raise EmptyTrainingSet("Cannot train a model on zero feature vectors")
    if X.shape[0] != len(y):
        raise ValueError(f"X has {X.shape[0]} rows but y has {len(y)} labels")
    if X.shape[1] != len(feature_names):
        raise ValueError(f"X has {X.shape[1]} columns but {len(feature_names)} feature names were given")
    if not np.all((y == 0) | (y == 1)):
        raise ValueError("Labels must be 0/1")

    n_samples, n_features = X.shape
    weights = class_weights(y, params.class_weight)

    w_pos = float(np.sum(weights[y == 1]))
    w_neg = float(np.sum(weights[y == 0]))
    eps = 1e-6
    base_score = float(np.log(max(w_pos, eps) / max(w_neg, eps)))

    thresholds = [_candidate_thresholds(X[:, j], params.max_bins) for j in range(n_features)]
    bins = np.zeros((n_samples, n_features), dtype=np.int64)
    for j, thr in enumerate(thresholds):
        if len(thr):
            bins[:, j] = np.searchsorted(thr, X[:, j], side="left")

    rng = np.random.default_rng(params.seed)
    n_sub = max(1, int(round(n_samples * params.subsample)))
    margin = np.full(n_samples, base_score, dtype=float)
    trees: List[Tuple[TreeNode, ...]] = []
    gains = np.zeros(n_features, dtype=float)

    for _ in range(params.n_estimators):
        probs = _sigmoid(margin)
        grad = weights * (probs - y)
        hess = np.maximum(weights * probs * (1.0 - probs), 1e-12)

        if n_sub < n_samples:
            rows = np.sort(rng.choice(n_samples, size=n_sub, replace=False))
        else:
            rows = np.arange(n_samples)

        builder = _TreeBuilder(bins, thresholds, params)
        builder.build(rows, grad, hess)
        tree = tuple(builder.nodes)
        trees.append(tree)
        gains += builder.gains
        margin += params.learning_rate * tree_predict(tree, X)

    total_gain = float(np.sum(gains))
    importance = {
        name: float(g / total_gain) if total_gain > 0 else 0.0
        for name, g in zip(feature_names, gains)
    }

    logger.info(
        "Trained %s: %d trees on %d rows x %d features (positive rate %.3f)",
        model_id,
        len(trees),
        n_samples,
        n_features,
        float(np.mean(y)),
    )

    return ModelArtifact(
        model_id=model_id,
        encoder_version=encoder_version,
        feature_names=tuple(feature_names),
        base_score=base_score,
        learning_rate=params.learning_rate,
        trees=tuple(trees),
        params=params.to_dict(),
        metrics={"feature_importance": importance},
    )


def predict_many(X: np.ndarray, artifact: ModelArtifact) -> np.ndarray:
    X = np.asarray(X, dtype=float)
    if X.ndim != 2 or X.shape[1] != len(artifact.feature_names):
        raise ValueError(
            f"Expected {len(artifact.feature_names)} features, got shape {X.shape}"
        )
    return _sigmoid(_raw_margin(X, artifact))


def predict(vector: FeatureVector, artifact: ModelArtifact) -> float:
    """Denial probability in [0, 1] for one encoded claim."""
    if vector.encoder_version != artifact.encoder_version:
        raise VersionMismatch(
            f"Vector encoded with {vector.encoder_version} but model {artifact.model_id} "
            f"was trained against {artifact.encoder_version}"
        )
    X = np.asarray([vector.values], dtype=float)
    return float(predict_many(X, artifact)[0])
