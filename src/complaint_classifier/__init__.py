"""Complaint Classifier -- predict a consumer complaint's product from its narrative."""

__version__ = "0.1.0"

from .classifier import (
    ClassificationMetrics,
    ClassifierAdapter,
    DecisionTreeAdapter,
    Model,
    NaiveBayesAdapter,
    evaluate,
    get_adapter,
)
from .config import PipelineConfig
from .loader import LoadResult, load_records
from .models import (
    ComplaintClassifierError,
    DegenerateVocabularyError,
    LabelDomainError,
    NormalizedRecord,
    Product,
    Record,
    TuningError,
)
from .normalizer import STOP_WORDS, TextNormalizer
from .pipeline import ComplaintPipeline, PipelineResult, Prediction
from .validation import (
    CrossValidationResult,
    Fold,
    TuningResult,
    cross_validate,
    decision_tree_grid,
    grid_search,
    regular_grid,
    stratified_k_fold,
    stratified_split,
)
from .vectorizer import CountVectorizer, FeatureMatrix, Vocabulary, VocabularyStats

__all__ = [
    # Pipeline
    "ComplaintPipeline",
    "PipelineConfig",
    "PipelineResult",
    "Prediction",
    # Data
    "Product",
    "Record",
    "NormalizedRecord",
    "LoadResult",
    "load_records",
    # Normalization
    "TextNormalizer",
    "STOP_WORDS",
    # Vectorization
    "CountVectorizer",
    "Vocabulary",
    "VocabularyStats",
    "FeatureMatrix",
    # Classification
    "ClassifierAdapter",
    "DecisionTreeAdapter",
    "NaiveBayesAdapter",
    "Model",
    "ClassificationMetrics",
    "evaluate",
    "get_adapter",
    # Validation
    "Fold",
    "CrossValidationResult",
    "TuningResult",
    "cross_validate",
    "grid_search",
    "regular_grid",
    "decision_tree_grid",
    "stratified_k_fold",
    "stratified_split",
    # Errors
    "ComplaintClassifierError",
    "DegenerateVocabularyError",
    "LabelDomainError",
    "TuningError",
]
