"""Oracle backed by the Anthropic Messages API.

Usage::

    from rule_tuner.adapters.anthropic_oracle import AnthropicOracle

    oracle = AnthropicOracle(model="claude-sonnet-4-5-20250929")
    reply = oracle.complete("Score this...", max_tokens=300)

Requires the ``anthropic`` package and ``ANTHROPIC_API_KEY`` env var.
"""

from __future__ import annotations

import logging
import os

from ..errors import OracleError, RateLimitError
from .base import Oracle

logger = logging.getLogger(__name__)


class AnthropicOracle(Oracle):
    """Judge model reached through ``anthropic.Anthropic().messages.create``.

    Args:
        model: Model identifier
        temperature: Sampling temperature
        api_key: API key; defaults to $ANTHROPIC_API_KEY
    """

    def __init__(self, model: str, temperature: float = 0.3, api_key: str | None = None):
        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise OSError("ANTHROPIC_API_KEY environment variable is required for the judge")

        import anthropic  # type: ignore[import-untyped]

        self._anthropic = anthropic
        self._client = anthropic.Anthropic(api_key=api_key)
        self._model = model
        self._temperature = temperature

    def complete(self, prompt: str, max_tokens: int) -> str:
        try:
            message = self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                temperature=self._temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except self._anthropic.RateLimitError as e:
            raise RateLimitError(str(e)) from e
        except self._anthropic.APIError as e:
            logger.debug("Judge call failed: %s", e)
            raise OracleError(str(e)) from e

        if not message.content:
            return "{}"
        return message.content[0].text

    @property
    def name(self) -> str:
        return f"Anthropic({self._model})"


__all__ = ["AnthropicOracle"]
