"""Bag-of-words vectorization with frequency and sparsity pruning.

The vocabulary is learned once from the training corpus in two passes:

1. keep terms whose document frequency reaches ``min_doc_freq``
2. of those, drop terms whose sparsity (share of documents that never use
   the term) exceeds ``max_sparsity``

The resulting :class:`Vocabulary` is immutable and is passed explicitly to
every transform, so training and inference matrices always share the same
columns in the same order. Counts are raw integers: no TF-IDF weighting and
no length normalization.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np

from .models import DegenerateVocabularyError, NormalizedRecord, Product

LOGGER = logging.getLogger("complaint_classifier.vectorizer")

Document = Union[NormalizedRecord, Sequence[str]]


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Vocabulary:
    """Retained terms in a fixed, sorted column order.

    Attributes:
        terms: Terms in column order.
        document_frequency: Training document frequency of each term,
            aligned with ``terms``.
        n_documents: Size of the training corpus the vocabulary was fit on.
    """

    terms: tuple[str, ...]
    document_frequency: tuple[int, ...]
    n_documents: int
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.terms) != len(self.document_frequency):
            raise ValueError("terms and document_frequency must have the same length")
        object.__setattr__(self, "_index", {term: i for i, term in enumerate(self.terms)})

    def __len__(self) -> int:
        return len(self.terms)

    def __contains__(self, term: object) -> bool:
        return term in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self.terms)

    def index(self, term: str) -> int:
        """Column index of a term.

        Raises:
            KeyError: If the term is not in the vocabulary.
        """
        return self._index[term]

    def frequency(self, term: str) -> int:
        """Training document frequency of a term."""
        return self.document_frequency[self._index[term]]

    def sparsity(self, term: str) -> float:
        """Fraction of training documents that do not contain the term."""
        df = self.frequency(term)
        return (self.n_documents - df) / self.n_documents

    def to_dict(self) -> dict:
        return {
            "n_documents": self.n_documents,
            "terms": {
                term: df for term, df in zip(self.terms, self.document_frequency)
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Vocabulary":
        terms = sorted(data["terms"])
        return cls(
            terms=tuple(terms),
            document_frequency=tuple(int(data["terms"][t]) for t in terms),
            n_documents=int(data["n_documents"]),
        )


@dataclass
class VocabularyStats:
    """Term counts after each vocabulary pruning pass."""

    n_documents: int = 0
    total_terms: int = 0
    after_frequency: int = 0
    after_sparsity: int = 0

    def to_dict(self) -> dict:
        return {
            "n_documents": self.n_documents,
            "total_terms": self.total_terms,
            "after_frequency": self.after_frequency,
            "after_sparsity": self.after_sparsity,
        }


# ---------------------------------------------------------------------------
# Feature matrix
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class FeatureMatrix:
    """Document-term count matrix over a fixed vocabulary.

    ``counts`` is stored as a read-only ``(n_rows, n_columns)`` int64 array;
    rows follow input document order. ``labels``, when present, pairs one
    product with each row.
    """

    vocabulary: Vocabulary
    counts: np.ndarray
    labels: Optional[tuple[Product, ...]] = None

    def __post_init__(self) -> None:
        width = len(self.vocabulary)
        counts = np.asarray(self.counts, dtype=np.int64)
        if counts is self.counts and counts.flags.writeable:
            counts = counts.copy()
        if counts.size == 0:
            counts = counts.reshape(0, width)
        if counts.ndim != 2 or counts.shape[1] != width:
            raise ValueError(f"counts has shape {counts.shape}, expected (n, {width})")
        counts.setflags(write=False)
        object.__setattr__(self, "counts", counts)
        if self.labels is not None and len(self.labels) != counts.shape[0]:
            raise ValueError(
                f"labels ({len(self.labels)}) and rows ({counts.shape[0]}) must have same length"
            )

    @property
    def n_rows(self) -> int:
        return int(self.counts.shape[0])

    @property
    def n_columns(self) -> int:
        return len(self.vocabulary)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.n_rows, self.n_columns)

    @property
    def terms(self) -> tuple[str, ...]:
        return self.vocabulary.terms

    def row(self, i: int) -> dict[str, int]:
        """Feature vector of row ``i`` as a term -> count mapping."""
        return dict(zip(self.vocabulary.terms, self.counts[i].tolist()))

    def to_numpy(self) -> np.ndarray:
        """Dense ``(n_rows, n_columns)`` int64 array (read-only, not copied)."""
        return self.counts

    def subset(self, indices: Sequence[int]) -> "FeatureMatrix":
        """Matrix restricted to the given rows, in the given order."""
        picked = self.counts[np.asarray(indices, dtype=np.intp)]
        picked.setflags(write=False)
        labels = None
        if self.labels is not None:
            labels = tuple(self.labels[i] for i in indices)
        return FeatureMatrix(vocabulary=self.vocabulary, counts=picked, labels=labels)


# ---------------------------------------------------------------------------
# Count Vectorizer
# ---------------------------------------------------------------------------


def _tokens_of(document: Document) -> Sequence[str]:
    if isinstance(document, NormalizedRecord):
        return document.tokens
    if isinstance(document, str):
        raise TypeError("Documents must be token sequences, not raw strings; normalize first")
    return document


def _labels_of(documents: Sequence[Document]) -> Optional[tuple[Product, ...]]:
    labels = []
    for document in documents:
        if not isinstance(document, NormalizedRecord) or document.label is None:
            return None
        labels.append(document.label)
    return tuple(labels) if documents else None


def document_frequencies(documents: Sequence[Document]) -> Counter[str]:
    """Number of documents each term appears in at least once."""
    doc_freq: Counter[str] = Counter()
    for document in documents:
        doc_freq.update(set(_tokens_of(document)))
    return doc_freq


@dataclass
class CountVectorizer:
    """Document-term count vectorizer with two-pass vocabulary pruning.

    Args:
        min_doc_freq: Minimum number of training documents a term must
            appear in.
        max_sparsity: Maximum fraction of training documents allowed to
            lack the term (0.95 keeps terms present in at least 5%).
    """

    min_doc_freq: int = 1000
    max_sparsity: float = 0.95

    # Learned state
    vocabulary_: Optional[Vocabulary] = field(default=None, repr=False)
    stats_: VocabularyStats = field(default_factory=VocabularyStats, repr=False)

    def __post_init__(self) -> None:
        if self.min_doc_freq < 1:
            raise ValueError("min_doc_freq must be at least 1")
        if not 0.0 <= self.max_sparsity <= 1.0:
            raise ValueError("max_sparsity must be between 0.0 and 1.0")

    def fit(self, documents: Sequence[Document]) -> Vocabulary:
        """Learn the vocabulary from a training corpus.

        Args:
            documents: Normalized records or token sequences.

        Returns:
            The fitted vocabulary (also stored as ``vocabulary_``).

        Raises:
            DegenerateVocabularyError: If the corpus is empty or no term
                survives both filters.
        """
        n_docs = len(documents)
        if n_docs == 0:
            raise DegenerateVocabularyError("Cannot fit a vocabulary on an empty corpus")

        doc_freq = document_frequencies(documents)

        frequent = {term: df for term, df in doc_freq.items() if df >= self.min_doc_freq}
        dense = {
            term: df
            for term, df in frequent.items()
            if (n_docs - df) / n_docs <= self.max_sparsity
        }

        self.stats_ = VocabularyStats(
            n_documents=n_docs,
            total_terms=len(doc_freq),
            after_frequency=len(frequent),
            after_sparsity=len(dense),
        )
        LOGGER.info(
            "[VOCAB] %d documents: %d terms -> %d with df >= %d -> %d with sparsity <= %.2f",
            n_docs,
            len(doc_freq),
            len(frequent),
            self.min_doc_freq,
            len(dense),
            self.max_sparsity,
        )

        if not dense:
            raise DegenerateVocabularyError(
                f"No terms survived pruning (min_doc_freq={self.min_doc_freq}, "
                f"max_sparsity={self.max_sparsity}) over {n_docs} documents"
            )

        terms = sorted(dense)
        self.vocabulary_ = Vocabulary(
            terms=tuple(terms),
            document_frequency=tuple(dense[t] for t in terms),
            n_documents=n_docs,
        )
        return self.vocabulary_

    def transform(
        self,
        documents: Sequence[Document],
        vocabulary: Optional[Vocabulary] = None,
    ) -> FeatureMatrix:
        """Count vocabulary terms in each document.

        Terms outside the vocabulary are ignored; the vocabulary is never
        extended at transform time.

        Args:
            documents: Normalized records or token sequences.
            vocabulary: Vocabulary to express the matrix over. Defaults to
                the fitted one.

        Returns:
            FeatureMatrix with one row per document.

        Raises:
            RuntimeError: If no vocabulary is given and none has been fit.
        """
        vocab = vocabulary if vocabulary is not None else self.vocabulary_
        if vocab is None:
            raise RuntimeError("Vectorizer has not been fitted. Call fit() first.")

        counts = np.zeros((len(documents), len(vocab)), dtype=np.int64)
        for i, document in enumerate(documents):
            for term, count in Counter(_tokens_of(document)).items():
                if term in vocab:
                    counts[i, vocab.index(term)] = count
        counts.setflags(write=False)

        return FeatureMatrix(vocabulary=vocab, counts=counts, labels=_labels_of(documents))

    def fit_transform(self, documents: Sequence[Document]) -> FeatureMatrix:
        """Fit and transform in one step."""
        vocabulary = self.fit(documents)
        return self.transform(documents, vocabulary)
