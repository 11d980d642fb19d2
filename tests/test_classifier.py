"""Tests for the classifier adapters and evaluation metrics.

Uses a small synthetic matrix where each product has its own indicator
term, so any reasonable classifier separates it perfectly.
"""

from __future__ import annotations

import pytest
from sklearn.naive_bayes import MultinomialNB

from complaint_classifier.classifier import (
    ADAPTERS,
    ClassificationMetrics,
    DecisionTreeAdapter,
    NaiveBayesAdapter,
    evaluate,
    get_adapter,
)
from complaint_classifier.models import LabelDomainError, Product
from complaint_classifier.vectorizer import FeatureMatrix, Vocabulary

VOCAB = Vocabulary(
    terms=("card", "mortgage", "student", "vehicle"),
    document_frequency=(3, 3, 3, 3),
    n_documents=12,
)

PRODUCT_ORDER = [
    Product.CREDIT_CARD,
    Product.MORTGAGE,
    Product.STUDENT_LOAN,
    Product.VEHICLE_LOAN,
]


def _indicator_matrix(copies: int = 3) -> FeatureMatrix:
    rows = []
    labels = []
    for col, product in enumerate(PRODUCT_ORDER):
        for n in range(copies):
            row = [0, 0, 0, 0]
            row[col] = n + 1
            rows.append(tuple(row))
            labels.append(product)
    return FeatureMatrix(vocabulary=VOCAB, counts=rows, labels=tuple(labels))


@pytest.fixture
def train_matrix() -> FeatureMatrix:
    return _indicator_matrix()


@pytest.fixture
def query_matrix() -> FeatureMatrix:
    return FeatureMatrix(
        vocabulary=VOCAB,
        counts=((0, 2, 0, 0), (0, 0, 0, 1), (5, 0, 0, 0), (0, 0, 1, 0)),
    )


EXPECTED_QUERY = [
    Product.MORTGAGE,
    Product.VEHICLE_LOAN,
    Product.CREDIT_CARD,
    Product.STUDENT_LOAN,
]


# ---------------------------------------------------------------------------
# Decision tree
# ---------------------------------------------------------------------------


class TestDecisionTreeAdapter:
    def test_train_and_predict(self, train_matrix, query_matrix) -> None:
        adapter = DecisionTreeAdapter()
        model = adapter.train(train_matrix)
        assert adapter.predict(model, query_matrix) == EXPECTED_QUERY

    def test_model_metadata(self, train_matrix) -> None:
        model = DecisionTreeAdapter().train(train_matrix, tree_depth=5)
        assert model.adapter == "decision_tree"
        assert model.hyperparameters == {"cost_complexity": 0.0, "tree_depth": 5, "min_n": 2}
        assert model.vocabulary is VOCAB
        assert set(model.classes) == set(PRODUCT_ORDER)
        assert model.to_dict()["n_features"] == 4

    def test_deterministic(self, train_matrix, query_matrix) -> None:
        first = DecisionTreeAdapter(seed=7)
        second = DecisionTreeAdapter(seed=7)
        assert first.predict(first.train(train_matrix), query_matrix) == second.predict(
            second.train(train_matrix), query_matrix
        )

    def test_explicit_string_labels(self, train_matrix, query_matrix) -> None:
        labels = [p.value for p in train_matrix.labels]
        unlabeled = FeatureMatrix(vocabulary=VOCAB, counts=train_matrix.counts)
        adapter = DecisionTreeAdapter()
        model = adapter.train(unlabeled, labels)
        assert adapter.predict(model, query_matrix) == EXPECTED_QUERY

    def test_shallow_tree_underfits(self, train_matrix) -> None:
        adapter = DecisionTreeAdapter()
        model = adapter.train(train_matrix, tree_depth=1)
        predicted = adapter.predict(model, train_matrix)
        assert len(set(predicted)) <= 2


# ---------------------------------------------------------------------------
# Naive Bayes
# ---------------------------------------------------------------------------


class TestNaiveBayes:
    def test_train_and_predict(self, train_matrix, query_matrix) -> None:
        adapter = NaiveBayesAdapter()
        model = adapter.train(train_matrix, alpha=0.5)
        assert adapter.predict(model, query_matrix) == EXPECTED_QUERY

    def test_rejects_non_positive_alpha(self, train_matrix) -> None:
        with pytest.raises(ValueError):
            NaiveBayesAdapter().train(train_matrix, alpha=0)

    def test_estimator_uses_smoothing(self, train_matrix) -> None:
        model = NaiveBayesAdapter().train(train_matrix, alpha=0.25)
        assert isinstance(model.estimator, MultinomialNB)
        assert model.estimator.alpha == 0.25
        assert model.hyperparameters == {"alpha": 0.25}

    def test_counts_outweigh_prior(self) -> None:
        vocab = Vocabulary(terms=("escrow", "forbearance"), document_frequency=(3, 1), n_documents=4)
        matrix = FeatureMatrix(
            vocabulary=vocab,
            counts=((2, 0), (3, 0), (1, 0), (0, 3)),
            labels=(Product.MORTGAGE, Product.MORTGAGE, Product.MORTGAGE, Product.STUDENT_LOAN),
        )
        adapter = NaiveBayesAdapter()
        model = adapter.train(matrix)
        query = FeatureMatrix(vocabulary=vocab, counts=((0, 2),))
        assert adapter.predict(model, query) == [Product.STUDENT_LOAN]


# ---------------------------------------------------------------------------
# Shared contract
# ---------------------------------------------------------------------------


class TestAdapterContract:
    def test_unknown_hyperparameter(self, train_matrix) -> None:
        with pytest.raises(ValueError, match="Unknown hyperparameters"):
            DecisionTreeAdapter().train(train_matrix, depth=3)

    def test_length_mismatch(self, train_matrix) -> None:
        with pytest.raises(ValueError):
            DecisionTreeAdapter().train(train_matrix, [Product.MORTGAGE])

    def test_missing_labels(self) -> None:
        unlabeled = FeatureMatrix(vocabulary=VOCAB, counts=((1, 0, 0, 0),))
        with pytest.raises(ValueError):
            DecisionTreeAdapter().train(unlabeled)

    def test_empty_matrix(self) -> None:
        empty = FeatureMatrix(vocabulary=VOCAB, counts=(), labels=())
        with pytest.raises(ValueError):
            NaiveBayesAdapter().train(empty)

    def test_label_outside_domain(self, train_matrix) -> None:
        labels = [p.value for p in train_matrix.labels]
        labels[0] = "Payday loan"
        with pytest.raises(LabelDomainError):
            DecisionTreeAdapter().train(train_matrix, labels)

    def test_vocabulary_mismatch(self, train_matrix) -> None:
        adapter = DecisionTreeAdapter()
        model = adapter.train(train_matrix)
        other = Vocabulary(
            terms=("card", "loan", "student", "vehicle"),
            document_frequency=(1, 1, 1, 1),
            n_documents=4,
        )
        with pytest.raises(ValueError, match="vocabulary"):
            adapter.predict(model, FeatureMatrix(vocabulary=other, counts=((1, 0, 0, 0),)))

    def test_predict_empty_matrix(self, train_matrix) -> None:
        adapter = NaiveBayesAdapter()
        model = adapter.train(train_matrix)
        assert adapter.predict(model, FeatureMatrix(vocabulary=VOCAB, counts=())) == []

    def test_get_adapter(self) -> None:
        assert isinstance(get_adapter("decision_tree", seed=3), DecisionTreeAdapter)
        assert get_adapter("decision_tree", seed=3).seed == 3
        assert isinstance(get_adapter("naive_bayes"), NaiveBayesAdapter)
        assert set(ADAPTERS) == {"decision_tree", "naive_bayes"}
        with pytest.raises(ValueError):
            get_adapter("random_forest")


# ---------------------------------------------------------------------------
# Evaluation metrics
# ---------------------------------------------------------------------------


class TestEvaluate:
    def test_perfect_predictions(self) -> None:
        labels = [Product.MORTGAGE, Product.CREDIT_CARD, Product.MORTGAGE]
        metrics = evaluate(labels, labels)
        assert metrics.accuracy == 1.0
        assert metrics.macro_f1 == 1.0

    def test_confusion_matrix(self) -> None:
        actual = [Product.MORTGAGE, Product.MORTGAGE, Product.CREDIT_CARD, Product.STUDENT_LOAN]
        predicted = [Product.MORTGAGE, Product.CREDIT_CARD, Product.CREDIT_CARD, Product.MORTGAGE]
        metrics = evaluate(predicted, actual)
        assert metrics.accuracy == pytest.approx(0.5)
        assert metrics.confusion_matrix["Mortgage"]["Mortgage"] == 1
        assert metrics.confusion_matrix["Mortgage"]["Credit card or prepaid card"] == 1
        assert metrics.confusion_matrix["Student loan"]["Mortgage"] == 1
        assert metrics.support == {
            "Credit card or prepaid card": 1,
            "Mortgage": 2,
            "Student loan": 1,
        }
        assert metrics.per_class["Student loan"]["recall"] == 0.0
        assert metrics.per_class["Mortgage"]["precision"] == pytest.approx(0.5)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            evaluate([Product.MORTGAGE], [])

    def test_predicted_only_class_has_zero_support(self) -> None:
        metrics = evaluate(
            [Product.MORTGAGE, Product.VEHICLE_LOAN],
            [Product.MORTGAGE, Product.MORTGAGE],
        )
        assert metrics.support["Vehicle loan or lease"] == 0
        assert metrics.per_class["Vehicle loan or lease"] == {
            "precision": 0.0,
            "recall": 0.0,
            "f1": 0.0,
        }
        assert metrics.confusion_matrix["Mortgage"]["Vehicle loan or lease"] == 1
        # weighted F1 ignores the zero-support class
        assert metrics.weighted_f1 == pytest.approx(metrics.per_class["Mortgage"]["f1"])
        assert metrics.macro_f1 == pytest.approx(metrics.per_class["Mortgage"]["f1"] / 2)

    def test_empty_input(self) -> None:
        metrics = evaluate([], [])
        assert metrics.accuracy == 0.0
        assert metrics.confusion_matrix == {}

    def test_metric_lookup(self) -> None:
        metrics = ClassificationMetrics(accuracy=0.8, macro_f1=0.6)
        assert metrics.metric("accuracy") == 0.8
        assert metrics.metric("macro_f1") == 0.6
        with pytest.raises(ValueError):
            metrics.metric("roc_auc")

    def test_summary_and_dict(self) -> None:
        metrics = evaluate([Product.MORTGAGE], [Product.MORTGAGE])
        assert "Accuracy: 100.00%" in metrics.summary()
        assert "Mortgage" in metrics.summary()
        assert metrics.to_dict()["accuracy"] == 1.0
