"""Data models and error types for complaint classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ComplaintClassifierError(Exception):
    """Base class for errors raised by the complaint classifier."""


class DegenerateVocabularyError(ComplaintClassifierError):
    """Raised when fitting produces an empty vocabulary."""


class LabelDomainError(ComplaintClassifierError, ValueError):
    """Raised when a training label is not one of the fixed products."""


class TuningError(ComplaintClassifierError):
    """Raised when a hyperparameter combination fails on a fold."""


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class Product(str, Enum):
    """The fixed complaint product categories."""

    CREDIT_CARD = "Credit card or prepaid card"
    MORTGAGE = "Mortgage"
    STUDENT_LOAN = "Student loan"
    VEHICLE_LOAN = "Vehicle loan or lease"

    @classmethod
    def from_label(cls, value: object) -> "Product":
        """Resolve a raw label to a Product.

        Raises:
            LabelDomainError: If the value is missing or not a known product.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise LabelDomainError(f"Missing or non-text product label: {value!r}")
        label = value.strip()
        for member in cls:
            if member.value == label:
                return member
        known = ", ".join(repr(m.value) for m in cls)
        raise LabelDomainError(f"Unknown product label {value!r}. Known: {known}")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Record:
    """A raw complaint narrative, labeled for training or unlabeled for inference."""

    text: str
    label: Optional[Product] = None

    @property
    def is_labeled(self) -> bool:
        return self.label is not None


@dataclass(frozen=True)
class NormalizedRecord:
    """A complaint after normalization: an ordered tuple of clean tokens."""

    tokens: tuple[str, ...]
    label: Optional[Product] = None

    @property
    def text(self) -> str:
        return " ".join(self.tokens)

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    def to_dict(self) -> dict:
        return {
            "label": self.label.value if self.label else None,
            "tokens": list(self.tokens),
        }
