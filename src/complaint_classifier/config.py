"""Pipeline configuration.

Defaults live on :class:`PipelineConfig`; ``PipelineConfig.from_env()``
overrides them from ``COMPLAINT_*`` environment variables, after loading a
``.env`` file from the working directory if one exists.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Callable, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

ENV_PREFIX = "COMPLAINT_"


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for a pipeline run.

    Attributes:
        text_column: Narrative column name; ``None`` auto-detects it.
        label_column: Product label column name.
        min_doc_freq: Minimum document frequency for a vocabulary term.
        max_sparsity: Maximum share of documents allowed to lack a term.
        folds: Number of cross-validation folds.
        grid_levels: Values per hyperparameter in the tuning grid.
        train_prop: Share of labeled rows used for training.
        metric: Metric maximized by the grid search.
        classifier: Classifier adapter name.
        seed: Random seed for splits, folds and the classifier.
        n_jobs: joblib workers for the grid search.
    """

    text_column: Optional[str] = None
    label_column: str = "Product"
    min_doc_freq: int = 1000
    max_sparsity: float = 0.95
    folds: int = 10
    grid_levels: int = 5
    train_prop: float = 0.75
    metric: str = "accuracy"
    classifier: str = "decision_tree"
    seed: int = 42
    n_jobs: int = 1

    def validate(self) -> "PipelineConfig":
        """Check value ranges, returning self.

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.min_doc_freq < 1:
            raise ValueError("min_doc_freq must be at least 1")
        if not 0.0 <= self.max_sparsity <= 1.0:
            raise ValueError("max_sparsity must be between 0.0 and 1.0")
        if self.folds < 2:
            raise ValueError("folds must be at least 2")
        if self.grid_levels < 1:
            raise ValueError("grid_levels must be at least 1")
        if not 0.0 < self.train_prop < 1.0:
            raise ValueError("train_prop must be between 0.0 and 1.0 (exclusive)")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must not be 0")
        return self

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "PipelineConfig":
        """Build a config from ``COMPLAINT_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file into ``os.environ`` first.

        Raises:
            ValueError: If a variable cannot be parsed or is out of range.
        """
        if dotenv and environ is None:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ if environ is None else environ

        parsers: dict[str, Callable[[str], object]] = {
            "text_column": str,
            "label_column": str,
            "min_doc_freq": int,
            "max_sparsity": float,
            "folds": int,
            "grid_levels": int,
            "train_prop": float,
            "metric": str,
            "classifier": str,
            "seed": int,
            "n_jobs": int,
        }

        overrides: dict[str, object] = {}
        for name, parse in parsers.items():
            var = ENV_PREFIX + name.upper()
            raw = env.get(var)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[name] = parse(raw.strip())
            except ValueError as exc:
                raise ValueError(f"Invalid value for {var}: {raw!r}") from exc

        return replace(cls(), **overrides).validate()
