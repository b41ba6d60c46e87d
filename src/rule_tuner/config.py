"""Configuration for a rule tuning run.

Every timing and sizing knob is carried by an explicit TunerConfig value that
is handed to each component at construction, so tests can shrink delays to
zero without patching module constants.

Public API:
    TunerConfig: Run configuration dataclass
    load_config: Load a TunerConfig from a YAML file
    make_rng: Build the random source threaded through sampling and splitting
"""

from __future__ import annotations

import dataclasses
import logging
import os
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


def _default_model() -> str:
    return os.environ.get("GRADER_MODEL", DEFAULT_MODEL)


@dataclass
class TunerConfig:
    """Configuration for the evaluate -> revise -> A/B test cycle.

    Attributes:
        model: Judge model identifier (defaults to $GRADER_MODEL)
        temperature: Sampling temperature for judge calls
        score_max_tokens: Response budget for a scoring call
        revision_max_tokens: Response budget for the rule revision call
        max_attempts: Total attempts per oracle call when rate limited
        retry_delay: Seconds to wait between rate-limited attempts
        pacing_delay: Seconds to wait between successive scoring calls
        sample_size: Conversations kept when sampling is enabled
        use_sampling: Randomly sample conversations before evaluating
        diagnostic_fraction: Fraction of worst results sent to revision
        max_diagnostic_examples: Examples embedded in the revision prompt
        good_score_threshold: Score at or above which a response counts as good
        seed: Seed for sampling and splitting (None = unseeded)
        output_dir: Where revised rules and reports are written
    """

    model: str = dataclasses.field(default_factory=_default_model)
    temperature: float = 0.3
    score_max_tokens: int = 300
    revision_max_tokens: int = 2000
    max_attempts: int = 3
    retry_delay: float = 0.5
    pacing_delay: float = 0.1
    sample_size: int = 5
    use_sampling: bool = True
    diagnostic_fraction: float = 0.1
    max_diagnostic_examples: int = 15
    good_score_threshold: float = 70.0
    seed: int | None = None
    output_dir: str = "/tmp/rule-tuner"

    def validate(self) -> list[str]:
        """Return a list of validation errors (empty = valid)."""
        errors: list[str] = []
        if not self.model:
            errors.append("model must be a non-empty string")
        if self.max_attempts < 1:
            errors.append(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.retry_delay < 0:
            errors.append(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.pacing_delay < 0:
            errors.append(f"pacing_delay must be >= 0, got {self.pacing_delay}")
        if self.score_max_tokens < 1 or self.revision_max_tokens < 1:
            errors.append("max token budgets must be >= 1")
        if self.sample_size < 1:
            errors.append(f"sample_size must be >= 1, got {self.sample_size}")
        if not 0.0 < self.diagnostic_fraction <= 1.0:
            errors.append(
                f"diagnostic_fraction must be in (0.0, 1.0], got {self.diagnostic_fraction}"
            )
        if self.max_diagnostic_examples < 1:
            errors.append(
                f"max_diagnostic_examples must be >= 1, got {self.max_diagnostic_examples}"
            )
        return errors

    def with_overrides(self, **overrides: Any) -> TunerConfig:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def load_config(path: str | Path) -> TunerConfig:
    """Load a TunerConfig from a YAML mapping.

    Keys mirror the TunerConfig attribute names; missing keys keep their
    defaults.

    Raises:
        ConfigError: If the file is unreadable, not a mapping, has unknown
            keys, or fails validation.
    """
    config_path = Path(path)
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping, got {type(data).__name__}")

    known = {f.name for f in dataclasses.fields(TunerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")

    config = TunerConfig(**data)
    errors = config.validate()
    if errors:
        raise ConfigError("; ".join(errors))

    logger.debug("Loaded config from %s", config_path)
    return config


def make_rng(seed: int | None) -> random.Random:
    """Random source for conversation sampling and the control/test split."""
    return random.Random(seed)


__all__ = ["TunerConfig", "load_config", "make_rng", "DEFAULT_MODEL"]
