"""Scoring client: the single point of contact with the judge.

Builds the scoring prompt, calls the oracle with a fixed-delay retry on rate
limiting, and validates the structured reply.

Philosophy:
- Only rate limits are retried; everything else is the caller's decision
- Malformed replies are never retried, they surface as ReplyParseError
- Parse, then validate: field presence and types are checked explicitly

Public API:
    Judgement: Score and feedback for one bot turn
    ScoringClient: Retrying oracle caller and turn scorer
    build_scoring_prompt: Prompt for scoring one context window
    strip_code_fences: Remove markdown code fences around a reply
    parse_judgement: Strictly parse a scoring reply
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..adapters.base import Oracle
from ..config import TunerConfig
from ..errors import RateLimitError, ReplyParseError
from .transcript import Message, render_context

logger = logging.getLogger(__name__)

SCORING_RUBRIC = """\
CRITERIA (0-100 points):
1. FUNNEL PROGRESSION (30pts) - Moves the customer forward, never backwards
2. CLARITY (25pts) - One question per turn, concise
3. TOOL USAGE (25pts) - Calls the correct tools
4. CONVERSION (20pts) - Keeps the customer engaged

PENALTIES:
- Payment link sent without a shipping quote: -40pts
- Skipped prepare_cart: -30pts
- Multiple questions in one turn: -15pts
- Did not use tools: -20pts"""

_FENCE_RE = re.compile(r"```(?:json)?\n?|\n?```", re.IGNORECASE)


@dataclass
class Judgement:
    """The judge's verdict on one bot turn."""

    score: float
    feedback: str


def build_scoring_prompt(context: list[Message] | tuple[Message, ...], rules: str) -> str:
    """Build the prompt asking the judge to score the last BOT message."""
    return f"""Score the last BOT message of this conversation (0-100).

CONTEXT:
{render_context(context)}

RULES:
{rules}

{SCORING_RUBRIC}

Reply ONLY with a single JSON object (no markdown, no code fences) with exactly these fields:
{{"score": <0-100>, "feedback": "<at most 2 short sentences>"}}"""


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fence markers and surrounding whitespace."""
    return _FENCE_RE.sub("", text).strip()


def load_reply_object(raw: str) -> dict[str, Any]:
    """Strip fences and parse a reply that must be a JSON object."""
    clean = strip_code_fences(raw)
    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError as e:
        raise ReplyParseError(f"Reply is not valid JSON: {e}", raw=raw) from e
    if not isinstance(parsed, dict):
        raise ReplyParseError(
            f"Reply must be a JSON object, got {type(parsed).__name__}", raw=raw
        )
    return parsed


def parse_judgement(raw: str) -> Judgement:
    """Parse and validate a scoring reply.

    Raises:
        ReplyParseError: Non-JSON reply, ``score`` / ``feedback`` missing
            or of the wrong type, or a NaN/Infinity score
    """
    parsed = load_reply_object(raw)

    score = parsed.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ReplyParseError(f"Reply 'score' must be a number, got {score!r}", raw=raw)
    if not math.isfinite(score):
        raise ReplyParseError(f"Reply 'score' must be finite, got {score!r}", raw=raw)
    feedback = parsed.get("feedback")
    if not isinstance(feedback, str):
        raise ReplyParseError(f"Reply 'feedback' must be a string, got {feedback!r}", raw=raw)

    # Out-of-range scores are kept as reported.
    if not 0 <= score <= 100:
        logger.warning("Judge returned out-of-range score %s", score)

    return Judgement(score=score, feedback=feedback)


class ScoringClient:
    """Calls the oracle with retry on rate limiting and scores bot turns.

    Args:
        oracle: The judge model
        config: Retry ceiling, retry delay and token budgets
        sleep: Sleep function used between retries (injectable for tests)
    """

    def __init__(
        self,
        oracle: Oracle,
        config: TunerConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._oracle = oracle
        self._config = config
        self._sleep = sleep

    def complete(self, prompt: str, max_tokens: int) -> str:
        """Call the oracle, retrying only on RateLimitError.

        At most ``config.max_attempts`` attempts are made with a fixed
        ``config.retry_delay`` wait between them. The last error is re-raised
        when attempts run out; any other error propagates immediately.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_fixed(self._config.retry_delay),
            retry=retry_if_exception_type(RateLimitError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(self._oracle.complete, prompt, max_tokens)

    def score(self, context: list[Message] | tuple[Message, ...], rules: str) -> Judgement:
        """Score the last message of a context window against the rules."""
        prompt = build_scoring_prompt(context, rules)
        raw = self.complete(prompt, self._config.score_max_tokens)
        return parse_judgement(raw)

    def _log_retry(self, retry_state: Any) -> None:
        logger.info(
            "Judge rate limited (attempt %d/%d), retrying in %.1fs",
            retry_state.attempt_number,
            self._config.max_attempts,
            self._config.retry_delay,
        )


__all__ = [
    "Judgement",
    "ScoringClient",
    "SCORING_RUBRIC",
    "build_scoring_prompt",
    "strip_code_fences",
    "load_reply_object",
    "parse_judgement",
]
