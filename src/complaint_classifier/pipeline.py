"""End-to-end complaint classification pipeline.

The ``ComplaintPipeline`` class is the primary entry point. It loads a
labeled complaint file, normalizes the narratives, splits off a stratified
test set, fits the vocabulary on the training portion only, tunes the
classifier by cross-validated grid search, refits the best configuration
and scores it on the test set. Given an unlabeled file it also predicts a
product for each of its rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np

from .classifier import ClassificationMetrics, ClassifierAdapter, Model, evaluate, get_adapter
from .config import PipelineConfig
from .loader import LoadResult, load_records
from .models import NormalizedRecord, Product
from .normalizer import TextNormalizer
from .validation import (
    Fold,
    TuningResult,
    decision_tree_grid,
    grid_search,
    regular_grid,
    stratified_split,
)
from .vectorizer import CountVectorizer, FeatureMatrix, Vocabulary, VocabularyStats

LOGGER = logging.getLogger("complaint_classifier.pipeline")


@dataclass
class Prediction:
    """Predicted product for one inference row."""

    row: int
    label: Product

    def to_dict(self) -> dict:
        return {"row": self.row, "label": self.label.value}


@dataclass
class PreparedData:
    """Training data after loading, normalization, splitting and vectorizing."""

    load: LoadResult
    split: Fold
    vocabulary: Vocabulary
    stats: VocabularyStats
    train: FeatureMatrix
    test: FeatureMatrix


@dataclass
class PipelineResult:
    """Everything a pipeline run produces."""

    load: LoadResult
    stats: VocabularyStats
    vocabulary: Vocabulary
    tuning: TuningResult
    model: Model
    test_metrics: ClassificationMetrics
    inference: Optional[LoadResult] = None
    predictions: list[Prediction] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "load": self.load.to_dict(),
            "vocabulary": {**self.stats.to_dict(), "terms": list(self.vocabulary.terms)},
            "tuning": self.tuning.to_dict(),
            "model": self.model.to_dict(),
            "test_metrics": self.test_metrics.to_dict(),
            "inference": self.inference.to_dict() if self.inference else None,
            "predictions": [p.to_dict() for p in self.predictions],
        }


class ComplaintPipeline:
    """Train, tune, evaluate and apply a complaint product classifier.

    Example::

        pipeline = ComplaintPipeline(PipelineConfig(min_doc_freq=50))
        result = pipeline.run("complaints.csv", "unlabeled.csv")

        print(result.test_metrics.summary())
        for prediction in result.predictions:
            print(prediction.row, prediction.label.value)

    Args:
        config: Pipeline settings. Defaults to ``PipelineConfig()``.
        normalizer: Custom TextNormalizer instance (optional).
        adapter: Custom ClassifierAdapter instance (optional). Defaults to
            the adapter named by ``config.classifier``.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        normalizer: TextNormalizer | None = None,
        adapter: ClassifierAdapter | None = None,
    ) -> None:
        self.config = (config or PipelineConfig()).validate()
        self.normalizer = normalizer or TextNormalizer()
        self.adapter = adapter or get_adapter(self.config.classifier, seed=self.config.seed)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def prepare(self, train_path: str | Path) -> PreparedData:
        """Load, normalize, split and vectorize a labeled file.

        The vocabulary is fit on the training split only; the test split
        is expressed over that vocabulary.

        Raises:
            DegenerateVocabularyError: If no term survives pruning.
            LabelDomainError: If a label is not a known product.
        """
        load = self._load(train_path, require_labels=True)
        normalized = self.normalizer.normalize_records(load.records)

        split = stratified_split(
            [r.label for r in normalized], prop=self.config.train_prop, seed=self.config.seed
        )
        train_docs = [normalized[i] for i in split.train]
        test_docs = [normalized[i] for i in split.test]
        LOGGER.info("[SPLIT] %d training rows, %d test rows", len(train_docs), len(test_docs))

        vectorizer = CountVectorizer(
            min_doc_freq=self.config.min_doc_freq,
            max_sparsity=self.config.max_sparsity,
        )
        train = vectorizer.fit_transform(train_docs)
        vocabulary = train.vocabulary
        test = vectorizer.transform(test_docs, vocabulary)

        return PreparedData(
            load=load,
            split=split,
            vocabulary=vocabulary,
            stats=vectorizer.stats_,
            train=train,
            test=test,
        )

    def tune(self, train: FeatureMatrix) -> TuningResult:
        """Grid-search the adapter's hyperparameters by cross-validation."""
        return grid_search(
            train,
            self.adapter,
            self.hyperparameter_grid(),
            k=self.config.folds,
            metric=self.config.metric,
            seed=self.config.seed,
            n_jobs=self.config.n_jobs,
        )

    def hyperparameter_grid(self) -> list[dict[str, Any]]:
        """Tuning grid for the configured adapter."""
        levels = self.config.grid_levels
        if self.adapter.name == "decision_tree":
            return decision_tree_grid(levels)
        if self.adapter.name == "naive_bayes":
            return regular_grid(alpha=[float(v) for v in np.logspace(-2, 1, levels)])
        return [self.adapter.default_hyperparameters()]

    def predict(self, model: Model, records: list[NormalizedRecord]) -> list[Product]:
        """Predict products for normalized records over the model's vocabulary."""
        matrix = CountVectorizer().transform(records, model.vocabulary)
        return self.adapter.predict(model, matrix)

    def predict_file(self, model: Model, path: str | Path) -> tuple[LoadResult, list[Prediction]]:
        """Predict a product for every narrative in an unlabeled file."""
        load = self._load(path, require_labels=False)
        normalized = self.normalizer.normalize_records(load.records)
        labels = self.predict(model, normalized)
        predictions = [Prediction(row=row, label=label) for row, label in zip(load.rows, labels)]
        LOGGER.info("[PREDICT] %d predictions for %s", len(predictions), Path(path).name)
        return load, predictions

    def run(
        self,
        train_path: str | Path,
        predict_path: str | Path | None = None,
    ) -> PipelineResult:
        """Run the full pipeline.

        Args:
            train_path: Labeled complaint file.
            predict_path: Optional unlabeled file to predict.

        Returns:
            PipelineResult with tuning results, the final model, test-set
            metrics and any predictions.
        """
        data = self.prepare(train_path)
        tuning = self.tune(data.train)

        model = self.adapter.train(data.train, **tuning.best_hyperparameters)
        test_metrics = evaluate(self.adapter.predict(model, data.test), data.test.labels or ())
        LOGGER.info("[EVAL] Test accuracy %.4f on %d rows", test_metrics.accuracy, data.test.n_rows)

        inference = None
        predictions: list[Prediction] = []
        if predict_path is not None:
            inference, predictions = self.predict_file(model, predict_path)

        return PipelineResult(
            load=data.load,
            stats=data.stats,
            vocabulary=data.vocabulary,
            tuning=tuning,
            model=model,
            test_metrics=test_metrics,
            inference=inference,
            predictions=predictions,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, path: str | Path, require_labels: bool) -> LoadResult:
        return load_records(
            path,
            text_column=self.config.text_column,
            label_column=self.config.label_column,
            require_labels=require_labels,
        )
