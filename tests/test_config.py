"""Tests for pipeline configuration."""

from __future__ import annotations

import pytest

from complaint_classifier.config import PipelineConfig


class TestDefaults:
    def test_defaults(self) -> None:
        config = PipelineConfig()
        assert config.min_doc_freq == 1000
        assert config.max_sparsity == 0.95
        assert config.folds == 10
        assert config.grid_levels == 5
        assert config.train_prop == 0.75
        assert config.label_column == "Product"
        assert config.text_column is None
        assert config.classifier == "decision_tree"

    def test_validate_returns_self(self) -> None:
        config = PipelineConfig()
        assert config.validate() is config

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_doc_freq": 0},
            {"max_sparsity": 1.5},
            {"folds": 1},
            {"grid_levels": 0},
            {"train_prop": 1.0},
            {"n_jobs": 0},
        ],
    )
    def test_validate_rejects_out_of_range(self, overrides) -> None:
        with pytest.raises(ValueError):
            PipelineConfig(**overrides).validate()

    def test_to_dict(self) -> None:
        data = PipelineConfig(seed=7).to_dict()
        assert data["seed"] == 7
        assert set(data) >= {"min_doc_freq", "max_sparsity", "folds", "metric"}


class TestFromEnv:
    def test_empty_environment_gives_defaults(self) -> None:
        assert PipelineConfig.from_env({}) == PipelineConfig()

    def test_overrides(self) -> None:
        config = PipelineConfig.from_env(
            {
                "COMPLAINT_MIN_DOC_FREQ": "50",
                "COMPLAINT_MAX_SPARSITY": "0.99",
                "COMPLAINT_FOLDS": "5",
                "COMPLAINT_TEXT_COLUMN": "narrative",
                "COMPLAINT_CLASSIFIER": "naive_bayes",
                "COMPLAINT_N_JOBS": "-1",
            }
        )
        assert config.min_doc_freq == 50
        assert config.max_sparsity == 0.99
        assert config.folds == 5
        assert config.text_column == "narrative"
        assert config.classifier == "naive_bayes"
        assert config.n_jobs == -1

    def test_blank_values_ignored(self) -> None:
        assert PipelineConfig.from_env({"COMPLAINT_FOLDS": "  "}).folds == 10

    def test_unrelated_variables_ignored(self) -> None:
        assert PipelineConfig.from_env({"FOLDS": "3"}).folds == 10

    def test_unparseable_value(self) -> None:
        with pytest.raises(ValueError, match="COMPLAINT_MIN_DOC_FREQ"):
            PipelineConfig.from_env({"COMPLAINT_MIN_DOC_FREQ": "many"})

    def test_out_of_range_value(self) -> None:
        with pytest.raises(ValueError):
            PipelineConfig.from_env({"COMPLAINT_TRAIN_PROP": "0"})

    def test_reads_os_environ(self, monkeypatch) -> None:
        monkeypatch.setenv("COMPLAINT_SEED", "123")
        assert PipelineConfig.from_env(dotenv=False).seed == 123

    def test_reads_dotenv_from_working_directory(self, tmp_path, monkeypatch) -> None:
        # recorded by monkeypatch so the value written by load_dotenv is undone
        monkeypatch.setenv("COMPLAINT_FOLDS", "10")
        monkeypatch.delenv("COMPLAINT_FOLDS")
        (tmp_path / ".env").write_text("COMPLAINT_FOLDS=3\n")
        monkeypatch.chdir(tmp_path)
        assert PipelineConfig.from_env().folds == 3

    def test_environment_wins_over_dotenv(self, tmp_path, monkeypatch) -> None:
        (tmp_path / ".env").write_text("COMPLAINT_SEED=5\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("COMPLAINT_SEED", "9")
        assert PipelineConfig.from_env().seed == 9
