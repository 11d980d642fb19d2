"""Stratified resampling, cross-validation and grid search.

Every (hyperparameter combination, fold) pair is an independent fit over
the same immutable feature matrix, so the search fans the pairs out over a
joblib worker pool and only reduces the collected metrics at the end. A
failing pair fails the whole search.
"""

from __future__ import annotations

import logging
import math
import random
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from itertools import product
from typing import Any, NamedTuple, Optional

import numpy as np
from joblib import Parallel, delayed

from .classifier import METRICS, ClassificationMetrics, ClassifierAdapter, evaluate
from .models import Product, TuningError
from .vectorizer import FeatureMatrix

LOGGER = logging.getLogger("complaint_classifier.validation")


class Fold(NamedTuple):
    """Row indices of one train/test partition."""

    train: tuple[int, ...]
    test: tuple[int, ...]


# ---------------------------------------------------------------------------
# Resampling
# ---------------------------------------------------------------------------


def _group_by_label(labels: Sequence[object]) -> dict[str, list[int]]:
    groups: dict[str, list[int]] = defaultdict(list)
    for idx, label in enumerate(labels):
        groups[label.value if isinstance(label, Product) else str(label)].append(idx)
    return {key: groups[key] for key in sorted(groups)}


def stratified_k_fold(
    labels: Sequence[object],
    k: int = 10,
    seed: int = 42,
) -> list[Fold]:
    """Generate stratified k-fold train/test index splits.

    Members of each class are shuffled and dealt round-robin across the
    folds, continuing the rotation from one class to the next. Every row is
    held out exactly once, each fold's class counts differ from the exact
    proportion by less than one, and fold sizes differ by at most one.

    Args:
        labels: Class label of each row.
        k: Number of folds.
        seed: Random seed for reproducibility.

    Returns:
        List of ``k`` Folds.

    Raises:
        ValueError: If ``k < 2`` or there are fewer rows than folds.
    """
    if k < 2:
        raise ValueError("k must be at least 2")
    if k > len(labels):
        raise ValueError(f"Cannot split {len(labels)} rows into {k} folds")

    rng = random.Random(seed)
    fold_assignments: list[int] = [0] * len(labels)
    offset = 0
    for indices in _group_by_label(labels).values():
        rng.shuffle(indices)
        for i, idx in enumerate(indices):
            fold_assignments[idx] = (offset + i) % k
        offset = (offset + len(indices)) % k

    folds: list[Fold] = []
    for fold_idx in range(k):
        test = tuple(i for i, f in enumerate(fold_assignments) if f == fold_idx)
        train = tuple(i for i, f in enumerate(fold_assignments) if f != fold_idx)
        folds.append(Fold(train=train, test=test))
    return folds


def stratified_split(
    labels: Sequence[object],
    prop: float = 0.75,
    seed: int = 42,
) -> Fold:
    """Split rows into training and test sets, stratified by label.

    Each class contributes ``floor(prop * n_class)`` rows to training; a
    class with two or more rows always keeps at least one row on each side,
    and a singleton class stays in training.

    Raises:
        ValueError: If ``prop`` is not strictly between 0 and 1.
    """
    if not 0.0 < prop < 1.0:
        raise ValueError("prop must be between 0.0 and 1.0 (exclusive)")

    rng = random.Random(seed)
    train: list[int] = []
    test: list[int] = []
    for indices in _group_by_label(labels).values():
        rng.shuffle(indices)
        n_train = math.floor(prop * len(indices))
        if len(indices) >= 2:
            n_train = min(max(n_train, 1), len(indices) - 1)
        else:
            n_train = len(indices)
        train.extend(indices[:n_train])
        test.extend(indices[n_train:])
    return Fold(train=tuple(sorted(train)), test=tuple(sorted(test)))


# ---------------------------------------------------------------------------
# Cross-Validation
# ---------------------------------------------------------------------------


@dataclass
class CrossValidationResult:
    """Per-fold metrics for one hyperparameter combination."""

    hyperparameters: dict[str, Any]
    fold_metrics: list[ClassificationMetrics] = field(default_factory=list)

    def mean(self, metric: str = "accuracy") -> float:
        """Mean of a metric across folds."""
        if not self.fold_metrics:
            return 0.0
        return sum(m.metric(metric) for m in self.fold_metrics) / len(self.fold_metrics)

    @property
    def mean_accuracy(self) -> float:
        return self.mean("accuracy")

    def to_dict(self, metric: str = "accuracy") -> dict:
        return {
            "hyperparameters": self.hyperparameters,
            "metric": metric,
            "mean": round(self.mean(metric), 4),
            "folds": [round(m.metric(metric), 4) for m in self.fold_metrics],
        }


def _resolve_labels(
    matrix: FeatureMatrix, labels: Optional[Sequence[object]]
) -> list[Product]:
    if labels is None:
        labels = matrix.labels
    if labels is None:
        raise ValueError("Cross-validation requires labels")
    if len(labels) != matrix.n_rows:
        raise ValueError(
            f"matrix rows ({matrix.n_rows}) and labels ({len(labels)}) must have same length"
        )
    return [Product.from_label(label) for label in labels]


def _evaluate_fold(
    adapter: ClassifierAdapter,
    matrix: FeatureMatrix,
    labels: list[Product],
    fold: Fold,
    hyperparameters: dict[str, Any],
    fold_index: int,
) -> ClassificationMetrics:
    """Train on a fold's training rows and score its held-out rows."""
    try:
        model = adapter.train(
            matrix.subset(fold.train),
            [labels[i] for i in fold.train],
            **hyperparameters,
        )
        predicted = adapter.predict(model, matrix.subset(fold.test))
        return evaluate(predicted, [labels[i] for i in fold.test])
    except Exception as exc:
        raise TuningError(
            f"{adapter.name} with {hyperparameters} failed on fold {fold_index + 1}: {exc}"
        ) from exc


def cross_validate(
    matrix: FeatureMatrix,
    adapter: ClassifierAdapter,
    labels: Optional[Sequence[object]] = None,
    hyperparameters: Optional[dict[str, Any]] = None,
    k: int = 10,
    seed: int = 42,
) -> CrossValidationResult:
    """Run stratified k-fold cross-validation for one configuration.

    Args:
        matrix: Feature matrix of the training set.
        adapter: Classifier to train on each fold.
        labels: Row labels. Defaults to ``matrix.labels``.
        hyperparameters: Hyperparameters passed to ``adapter.train``.
        k: Number of folds.
        seed: Random seed for fold generation.

    Returns:
        CrossValidationResult with one ClassificationMetrics per fold.
    """
    products = _resolve_labels(matrix, labels)
    params = dict(hyperparameters or {})
    folds = stratified_k_fold(products, k=k, seed=seed)
    fold_metrics = [
        _evaluate_fold(adapter, matrix, products, fold, params, i)
        for i, fold in enumerate(folds)
    ]
    return CrossValidationResult(hyperparameters=params, fold_metrics=fold_metrics)


# ---------------------------------------------------------------------------
# Hyperparameter grids
# ---------------------------------------------------------------------------


def regular_grid(**levels: Sequence[Any]) -> list[dict[str, Any]]:
    """Every combination of the given parameter values.

    The first parameter varies slowest, so the grid order is stable and
    predictable for tie-breaking.

    Example::

        regular_grid(tree_depth=[1, 5], min_n=[2, 10])
        # [{'tree_depth': 1, 'min_n': 2}, {'tree_depth': 1, 'min_n': 10},
        #  {'tree_depth': 5, 'min_n': 2}, {'tree_depth': 5, 'min_n': 10}]
    """
    for name, values in levels.items():
        if len(values) == 0:
            raise ValueError(f"No values given for hyperparameter '{name}'")
    names = list(levels)
    return [dict(zip(names, combo)) for combo in product(*(levels[n] for n in names))]


def decision_tree_grid(levels: int = 5) -> list[dict[str, Any]]:
    """Regular grid over ``cost_complexity`` and ``tree_depth``.

    ``cost_complexity`` is log-spaced over 1e-10 .. 1e-1 and ``tree_depth``
    takes evenly spaced whole depths over 1 .. 15.
    """
    if levels < 1:
        raise ValueError("levels must be at least 1")
    cost_complexity = [float(v) for v in np.logspace(-10, -1, levels)]
    depths: list[int] = []
    for v in np.linspace(1, 15, levels):
        if int(v) not in depths:
            depths.append(int(v))
    return regular_grid(cost_complexity=cost_complexity, tree_depth=depths)


# ---------------------------------------------------------------------------
# Grid search
# ---------------------------------------------------------------------------


@dataclass
class TuningResult:
    """Outcome of a grid search.

    Attributes:
        metric: Metric used to rank combinations.
        candidates: Cross-validation results in grid order.
        best_index: Position of the selected combination in the grid.
    """

    metric: str
    candidates: list[CrossValidationResult] = field(default_factory=list)
    best_index: int = 0

    @property
    def best(self) -> CrossValidationResult:
        return self.candidates[self.best_index]

    @property
    def best_hyperparameters(self) -> dict[str, Any]:
        return dict(self.best.hyperparameters)

    @property
    def best_score(self) -> float:
        return self.best.mean(self.metric)

    def ranked(self, top_n: Optional[int] = None) -> list[CrossValidationResult]:
        """Candidates by descending score, ties kept in grid order."""
        ordered = sorted(self.candidates, key=lambda c: c.mean(self.metric), reverse=True)
        return ordered[:top_n] if top_n is not None else ordered

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "best_hyperparameters": self.best_hyperparameters,
            "best_score": round(self.best_score, 4),
            "candidates": [c.to_dict(self.metric) for c in self.candidates],
        }


def grid_search(
    matrix: FeatureMatrix,
    adapter: ClassifierAdapter,
    grid: Sequence[dict[str, Any]],
    labels: Optional[Sequence[object]] = None,
    k: int = 10,
    metric: str = "accuracy",
    seed: int = 42,
    n_jobs: int = 1,
) -> TuningResult:
    """Cross-validate every grid combination and pick the best one.

    Args:
        matrix: Feature matrix of the training set.
        adapter: Classifier to tune.
        grid: Hyperparameter combinations, in tie-breaking order.
        labels: Row labels. Defaults to ``matrix.labels``.
        k: Number of folds.
        metric: Metric to maximize (see ``METRICS``).
        seed: Random seed for fold generation, shared by all combinations.
        n_jobs: joblib worker count; 1 evaluates inline.

    Returns:
        TuningResult whose best combination has the highest mean metric,
        the earliest in the grid winning ties.

    Raises:
        ValueError: If the grid is empty or the metric is unknown.
        TuningError: If any combination fails on any fold.
    """
    if not grid:
        raise ValueError("Hyperparameter grid is empty")
    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric}. Known: {', '.join(METRICS)}")

    products = _resolve_labels(matrix, labels)
    folds = stratified_k_fold(products, k=k, seed=seed)
    LOGGER.info(
        "[TUNE] %s: %d combinations x %d folds on %d rows (n_jobs=%d)",
        adapter.name,
        len(grid),
        len(folds),
        matrix.n_rows,
        n_jobs,
    )

    pairs = [(ci, fi) for ci in range(len(grid)) for fi in range(len(folds))]
    fold_metrics = Parallel(n_jobs=n_jobs)(
        delayed(_evaluate_fold)(adapter, matrix, products, folds[fi], dict(grid[ci]), fi)
        for ci, fi in pairs
    )

    by_candidate: dict[int, list[ClassificationMetrics]] = defaultdict(list)
    for (ci, _), metrics in zip(pairs, fold_metrics):
        by_candidate[ci].append(metrics)

    candidates = [
        CrossValidationResult(hyperparameters=dict(grid[ci]), fold_metrics=by_candidate[ci])
        for ci in range(len(grid))
    ]

    best_index, best_score = 0, -math.inf
    for ci, candidate in enumerate(candidates):
        score = candidate.mean(metric)
        LOGGER.debug("[TUNE] %s -> mean %s %.4f", candidate.hyperparameters, metric, score)
        if score > best_score:
            best_index, best_score = ci, score

    result = TuningResult(metric=metric, candidates=candidates, best_index=best_index)
    LOGGER.info(
        "[TUNE] Best %s=%.4f with %s", metric, best_score, result.best_hyperparameters
    )
    return result
