"""Tests for TunerConfig and YAML config loading."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from rule_tuner.config import DEFAULT_MODEL, TunerConfig, load_config, make_rng
from rule_tuner.errors import ConfigError


class TestTunerConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GRADER_MODEL", raising=False)
        config = TunerConfig()
        assert config.model == DEFAULT_MODEL
        assert config.max_attempts == 3
        assert config.retry_delay == 0.5
        assert config.pacing_delay == 0.1
        assert config.score_max_tokens == 300
        assert config.revision_max_tokens == 2000
        assert config.sample_size == 5
        assert config.use_sampling is True
        assert config.diagnostic_fraction == 0.1
        assert config.max_diagnostic_examples == 15
        assert config.validate() == []

    def test_model_from_env(self, monkeypatch):
        monkeypatch.setenv("GRADER_MODEL", "judge-x")
        assert TunerConfig().model == "judge-x"

    def test_validate_reports_errors(self):
        config = TunerConfig(max_attempts=0, pacing_delay=-1, diagnostic_fraction=0.0)
        errors = config.validate()
        assert len(errors) == 3
        assert any("max_attempts" in e for e in errors)

    def test_with_overrides_skips_none(self):
        config = TunerConfig(sample_size=5).with_overrides(sample_size=None, seed=3)
        assert config.sample_size == 5
        assert config.seed == 3

    def test_with_overrides_returns_copy(self):
        base = TunerConfig()
        base.with_overrides(output_dir="/elsewhere")
        assert base.output_dir == "/tmp/rule-tuner"


class TestLoadConfig:
    def test_load(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            textwrap.dedent(
                """\
                model: judge-y
                pacing_delay: 0
                use_sampling: false
                seed: 7
                """
            )
        )
        config = load_config(path)
        assert config.model == "judge-y"
        assert config.pacing_delay == 0
        assert config.use_sampling is False
        assert config.seed == 7
        assert config.max_attempts == 3

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path).max_attempts == 3

    def test_unknown_key(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("retries: 5\n")
        with pytest.raises(ConfigError, match="retries"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_invalid_value(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("max_attempts: 0\n")
        with pytest.raises(ConfigError, match="max_attempts"):
            load_config(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")


class TestMakeRng:
    def test_seeded_sequences_match(self):
        assert make_rng(1).random() == make_rng(1).random()
