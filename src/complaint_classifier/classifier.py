"""Pluggable classifiers over document-term count matrices.

Every classifier sits behind the same :class:`ClassifierAdapter` contract:

- ``train(matrix, labels, **hyperparameters)`` returns a :class:`Model`
- ``predict(model, matrix)`` returns one product per row, in row order

plus a shared :func:`evaluate` for accuracy, per-class scores and the
confusion matrix.

Two adapters are provided, both backed by scikit-learn:

- :class:`DecisionTreeAdapter` -- CART tree with ``cost_complexity``,
  ``tree_depth`` and ``min_n`` hyperparameters
- :class:`NaiveBayesAdapter` -- multinomial Naive Bayes with Laplace
  smoothing, a fast baseline
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
from sklearn.metrics import accuracy_score, confusion_matrix, precision_recall_fscore_support
from sklearn.naive_bayes import MultinomialNB
from sklearn.tree import DecisionTreeClassifier

from .models import Product
from .vectorizer import FeatureMatrix, Vocabulary

LOGGER = logging.getLogger("complaint_classifier.classifier")


# ---------------------------------------------------------------------------
# Evaluation Metrics
# ---------------------------------------------------------------------------

METRICS: tuple[str, ...] = (
    "accuracy",
    "macro_precision",
    "macro_recall",
    "macro_f1",
    "weighted_f1",
)


def _label_name(label: object) -> str:
    return label.value if isinstance(label, Product) else str(label)


@dataclass
class ClassificationMetrics:
    """Evaluation metrics for a set of predictions.

    Attributes:
        accuracy: Overall accuracy.
        per_class: Per-class precision, recall, F1 scores.
        macro_precision: Unweighted mean precision across classes.
        macro_recall: Unweighted mean recall across classes.
        macro_f1: Unweighted mean F1 across classes.
        weighted_f1: Support-weighted mean F1 across classes.
        confusion_matrix: Dict of {true: {predicted: count}}.
        support: Per-class sample counts in the true labels.
    """

    accuracy: float = 0.0
    per_class: dict[str, dict[str, float]] = field(default_factory=dict)
    macro_precision: float = 0.0
    macro_recall: float = 0.0
    macro_f1: float = 0.0
    weighted_f1: float = 0.0
    confusion_matrix: dict[str, dict[str, int]] = field(default_factory=dict)
    support: dict[str, int] = field(default_factory=dict)

    def metric(self, name: str) -> float:
        """Look up an aggregate metric by name."""
        if name not in METRICS:
            raise ValueError(f"Unknown metric: {name}. Known: {', '.join(METRICS)}")
        return getattr(self, name)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {name: round(self.metric(name), 4) for name in METRICS}
        data["per_class"] = {
            cls: {k: round(v, 4) for k, v in scores.items()}
            for cls, scores in self.per_class.items()
        }
        data["confusion_matrix"] = self.confusion_matrix
        data["support"] = self.support
        return data

    def summary(self) -> str:
        """Text report: headline metrics, then one row per product."""
        header = f"{'Product':<28} {'Precision':>10} {'Recall':>10} {'F1':>10} {'Support':>10}"
        lines = [
            f"Accuracy: {self.accuracy:.2%}",
            f"Macro precision / recall / F1: {self.macro_precision:.4f} / "
            f"{self.macro_recall:.4f} / {self.macro_f1:.4f}",
            f"Weighted F1: {self.weighted_f1:.4f}",
            "",
            header,
            "-" * len(header),
        ]
        for cls, scores in sorted(self.per_class.items()):
            lines.append(
                f"{cls:<28} {scores['precision']:>10.4f} {scores['recall']:>10.4f} "
                f"{scores['f1']:>10.4f} {self.support.get(cls, 0):>10}"
            )
        return "\n".join(lines)


def evaluate(
    predicted: Sequence[object],
    actual: Sequence[object],
) -> ClassificationMetrics:
    """Compute classification metrics from predicted and true labels.

    Classes are the union of predicted and true labels; a class that is
    never predicted, or never present, scores 0 rather than raising.

    Args:
        predicted: Predicted labels.
        actual: Ground truth labels, aligned with ``predicted``.

    Returns:
        ClassificationMetrics with accuracy, per-class scores and the
        confusion matrix.
    """
    if len(predicted) != len(actual):
        raise ValueError(
            f"predicted ({len(predicted)}) and actual ({len(actual)}) must have same length"
        )

    y_pred = [_label_name(p) for p in predicted]
    y_true = [_label_name(t) for t in actual]
    classes = sorted(set(y_true) | set(y_pred))
    if not classes:
        return ClassificationMetrics()

    precision, recall, f1, support = precision_recall_fscore_support(
        y_true, y_pred, labels=classes, zero_division=0
    )
    _, _, weighted_f1, _ = precision_recall_fscore_support(
        y_true, y_pred, labels=classes, average="weighted", zero_division=0
    )
    cm = confusion_matrix(y_true, y_pred, labels=classes)

    return ClassificationMetrics(
        accuracy=float(accuracy_score(y_true, y_pred)),
        per_class={
            cls: {"precision": float(p), "recall": float(r), "f1": float(f)}
            for cls, p, r, f in zip(classes, precision, recall, f1)
        },
        macro_precision=float(np.mean(precision)),
        macro_recall=float(np.mean(recall)),
        macro_f1=float(np.mean(f1)),
        weighted_f1=float(weighted_f1),
        confusion_matrix={
            true: {pred: int(cm[i, j]) for j, pred in enumerate(classes)}
            for i, true in enumerate(classes)
        },
        support={cls: int(s) for cls, s in zip(classes, support)},
    )


# ---------------------------------------------------------------------------
# Adapter contract
# ---------------------------------------------------------------------------


@dataclass
class Model:
    """A trained classifier bound to the vocabulary it was trained on."""

    adapter: str
    hyperparameters: dict[str, Any]
    vocabulary: Vocabulary
    classes: tuple[Product, ...]
    estimator: Any = field(repr=False)

    def to_dict(self) -> dict:
        return {
            "adapter": self.adapter,
            "hyperparameters": self.hyperparameters,
            "classes": [c.value for c in self.classes],
            "n_features": len(self.vocabulary),
        }


class ClassifierAdapter(ABC):
    """Abstract base class for classifiers over count matrices.

    Subclasses implement ``_fit`` and ``_predict`` against a dense count
    array; input checking, hyperparameter resolution and label mapping are
    shared here.
    """

    name: str = ""

    @abstractmethod
    def default_hyperparameters(self) -> dict[str, Any]:
        """Hyperparameters used when ``train`` is not given a value."""
        ...

    @abstractmethod
    def _fit(self, matrix: FeatureMatrix, labels: list[str], params: dict[str, Any]) -> Any:
        ...

    @abstractmethod
    def _predict(self, estimator: Any, matrix: FeatureMatrix) -> list[str]:
        ...

    def train(
        self,
        matrix: FeatureMatrix,
        labels: Optional[Sequence[object]] = None,
        **hyperparameters: Any,
    ) -> Model:
        """Train on a labeled feature matrix.

        Args:
            matrix: Training feature matrix.
            labels: One product per row. Defaults to ``matrix.labels``.
            **hyperparameters: Overrides for ``default_hyperparameters()``.

        Returns:
            The trained Model.

        Raises:
            ValueError: On empty input, a row/label length mismatch, or an
                unknown hyperparameter.
            LabelDomainError: If a label is not one of the fixed products.
        """
        if labels is None:
            labels = matrix.labels
        if labels is None:
            raise ValueError("Training requires labels")
        if len(labels) != matrix.n_rows:
            raise ValueError(
                f"matrix rows ({matrix.n_rows}) and labels ({len(labels)}) must have same length"
            )
        if matrix.n_rows == 0:
            raise ValueError("Cannot train on an empty feature matrix")

        products = [Product.from_label(label) for label in labels]

        params = self.default_hyperparameters()
        unknown = set(hyperparameters) - set(params)
        if unknown:
            raise ValueError(
                f"Unknown hyperparameters for {self.name}: {', '.join(sorted(unknown))}"
            )
        params.update(hyperparameters)

        estimator = self._fit(matrix, [p.value for p in products], params)
        classes = tuple(sorted(set(products), key=lambda p: p.value))
        LOGGER.debug(
            "[TRAIN] %s on %d rows x %d terms with %s",
            self.name,
            matrix.n_rows,
            matrix.n_columns,
            params,
        )
        return Model(
            adapter=self.name,
            hyperparameters=params,
            vocabulary=matrix.vocabulary,
            classes=classes,
            estimator=estimator,
        )

    def predict(self, model: Model, matrix: FeatureMatrix) -> list[Product]:
        """Predict one product per matrix row, in row order.

        Raises:
            ValueError: If the matrix is not expressed over the model's
                vocabulary.
        """
        if matrix.vocabulary != model.vocabulary:
            raise ValueError(
                "Feature matrix vocabulary does not match the model's training vocabulary"
            )
        if matrix.n_rows == 0:
            return []
        return [Product(label) for label in self._predict(model.estimator, matrix)]


# ---------------------------------------------------------------------------
# Decision tree
# ---------------------------------------------------------------------------


class DecisionTreeAdapter(ClassifierAdapter):
    """CART decision tree backed by scikit-learn.

    Hyperparameters:
        cost_complexity: Minimal cost-complexity pruning strength
            (``ccp_alpha``).
        tree_depth: Maximum tree depth (``max_depth``).
        min_n: Minimum samples required to split a node
            (``min_samples_split``).

    Args:
        seed: Random state for reproducible tie-breaking between splits.
    """

    name = "decision_tree"

    def __init__(self, seed: int = 42) -> None:
        self.seed = seed

    def default_hyperparameters(self) -> dict[str, Any]:
        return {"cost_complexity": 0.0, "tree_depth": 30, "min_n": 2}

    def _fit(
        self, matrix: FeatureMatrix, labels: list[str], params: dict[str, Any]
    ) -> DecisionTreeClassifier:
        tree = DecisionTreeClassifier(
            ccp_alpha=float(params["cost_complexity"]),
            max_depth=int(params["tree_depth"]),
            min_samples_split=int(params["min_n"]),
            random_state=self.seed,
        )
        tree.fit(matrix.to_numpy(), labels)
        return tree

    def _predict(self, estimator: DecisionTreeClassifier, matrix: FeatureMatrix) -> list[str]:
        return [str(label) for label in estimator.predict(matrix.to_numpy())]


# ---------------------------------------------------------------------------
# Multinomial Naive Bayes
# ---------------------------------------------------------------------------


class NaiveBayesAdapter(ClassifierAdapter):
    """Multinomial Naive Bayes baseline backed by scikit-learn.

    Hyperparameters:
        alpha: Laplace smoothing strength.
    """

    name = "naive_bayes"

    def default_hyperparameters(self) -> dict[str, Any]:
        return {"alpha": 1.0}

    def _fit(
        self, matrix: FeatureMatrix, labels: list[str], params: dict[str, Any]
    ) -> MultinomialNB:
        if params["alpha"] <= 0:
            raise ValueError("alpha must be positive")
        return MultinomialNB(alpha=float(params["alpha"])).fit(matrix.to_numpy(), labels)

    def _predict(self, estimator: MultinomialNB, matrix: FeatureMatrix) -> list[str]:
        return [str(label) for label in estimator.predict(matrix.to_numpy())]


ADAPTERS: dict[str, type[ClassifierAdapter]] = {
    DecisionTreeAdapter.name: DecisionTreeAdapter,
    NaiveBayesAdapter.name: NaiveBayesAdapter,
}


def get_adapter(name: str, seed: int = 42) -> ClassifierAdapter:
    """Instantiate a classifier adapter by name.

    Raises:
        ValueError: If no adapter has that name.
    """
    if name == DecisionTreeAdapter.name:
        return DecisionTreeAdapter(seed=seed)
    if name == NaiveBayesAdapter.name:
        return NaiveBayesAdapter()
    raise ValueError(f"Unknown classifier: {name}. Known: {', '.join(sorted(ADAPTERS))}")
