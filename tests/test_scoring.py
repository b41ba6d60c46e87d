"""Tests for the scoring client.

Tests cover:
- Code fence stripping and strict reply validation
- Prompt structure (context lines, rules, rubric, JSON instruction)
- Retry on rate limiting with a fixed delay and a 3-attempt ceiling
- No retry for other failures or malformed replies
"""

from __future__ import annotations

import pytest

from rule_tuner.adapters.base import Oracle
from rule_tuner.config import TunerConfig
from rule_tuner.core.scoring import (
    Judgement,
    ScoringClient,
    build_scoring_prompt,
    parse_judgement,
    strip_code_fences,
)
from rule_tuner.core.transcript import Message, Sender
from rule_tuner.errors import OracleError, RateLimitError, ReplyParseError

# --- Test helpers ---


class ScriptedOracle(Oracle):
    """Returns (or raises) scripted replies in order and records prompts."""

    def __init__(self, replies: list):
        self._replies = list(replies)
        self.prompts: list[str] = []
        self.max_tokens: list[int] = []

    def complete(self, prompt: str, max_tokens: int) -> str:
        self.prompts.append(prompt)
        self.max_tokens.append(max_tokens)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _context() -> list[Message]:
    return [
        Message(type="text", origin="wa", sender=Sender.CUSTOMER, content="I want shoes"),
        Message(type="text", origin="wa", sender=Sender.BOT, content="Which size?"),
    ]


GOOD_REPLY = '{"score": 85, "feedback": "Clear single question."}'


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_uppercase_json_fence(self):
        assert strip_code_fences('```JSON\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseJudgement:
    def test_valid(self):
        assert parse_judgement(GOOD_REPLY) == Judgement(score=85, feedback="Clear single question.")

    def test_fenced(self):
        assert parse_judgement(f"```json\n{GOOD_REPLY}\n```").score == 85

    def test_float_score(self):
        assert parse_judgement('{"score": 72.5, "feedback": "ok"}').score == 72.5

    @pytest.mark.parametrize(
        "raw",
        [
            "not json at all",
            "[1, 2]",
            '{"feedback": "missing score"}',
            '{"score": 50}',
            '{"score": "50", "feedback": "string score"}',
            '{"score": true, "feedback": "bool score"}',
            '{"score": 50, "feedback": 3}',
            '{"score": NaN, "feedback": "not a number"}',
            '{"score": Infinity, "feedback": "unbounded"}',
            '{"score": -Infinity, "feedback": "unbounded"}',
        ],
    )
    def test_rejects_malformed(self, raw: str):
        with pytest.raises(ReplyParseError):
            parse_judgement(raw)

    def test_parse_error_keeps_raw_reply(self):
        with pytest.raises(ReplyParseError) as exc_info:
            parse_judgement("oops")
        assert exc_info.value.raw == "oops"

    def test_out_of_range_passes_through(self):
        assert parse_judgement('{"score": 140, "feedback": "x"}').score == 140
        assert parse_judgement('{"score": -5, "feedback": "x"}').score == -5


class TestBuildScoringPrompt:
    def test_contains_required_parts(self):
        prompt = build_scoring_prompt(_context(), "RULE 1: Always quote shipping.")
        assert "CUSTOMER: I want shoes\nBOT: Which size?" in prompt
        assert "RULE 1: Always quote shipping." in prompt
        assert "(30pts)" in prompt and "(25pts)" in prompt and "(20pts)" in prompt
        assert "-40pts" in prompt
        assert '"score"' in prompt and '"feedback"' in prompt


class TestScoringClientRetry:
    def _client(self, oracle: Oracle, sleep: SleepRecorder) -> ScoringClient:
        return ScoringClient(oracle, TunerConfig(max_attempts=3, retry_delay=0.5), sleep=sleep)

    def test_success_on_third_attempt(self):
        oracle = ScriptedOracle([RateLimitError("429"), RateLimitError("429"), GOOD_REPLY])
        sleep = SleepRecorder()

        judgement = self._client(oracle, sleep).score(_context(), "rules")

        assert judgement.score == 85
        assert len(oracle.prompts) == 3
        assert sleep.calls == [0.5, 0.5]

    def test_rate_limit_exhaustion_is_terminal(self):
        oracle = ScriptedOracle([RateLimitError("429")] * 3)
        sleep = SleepRecorder()

        with pytest.raises(RateLimitError):
            self._client(oracle, sleep).score(_context(), "rules")

        assert len(oracle.prompts) == 3
        assert len(sleep.calls) == 2

    def test_other_failures_not_retried(self):
        oracle = ScriptedOracle([OracleError("connection reset"), GOOD_REPLY])
        sleep = SleepRecorder()

        with pytest.raises(OracleError, match="connection reset"):
            self._client(oracle, sleep).score(_context(), "rules")

        assert len(oracle.prompts) == 1
        assert sleep.calls == []

    def test_malformed_reply_not_retried(self):
        oracle = ScriptedOracle(["garbage", GOOD_REPLY])
        sleep = SleepRecorder()

        with pytest.raises(ReplyParseError):
            self._client(oracle, sleep).score(_context(), "rules")

        assert len(oracle.prompts) == 1

    def test_custom_ceiling(self):
        oracle = ScriptedOracle([RateLimitError("429")] * 5)
        sleep = SleepRecorder()
        client = ScoringClient(oracle, TunerConfig(max_attempts=5, retry_delay=0.0), sleep=sleep)

        with pytest.raises(RateLimitError):
            client.complete("p", 10)

        assert len(oracle.prompts) == 5

    def test_scoring_uses_score_budget(self):
        oracle = ScriptedOracle([GOOD_REPLY])
        client = ScoringClient(oracle, TunerConfig(score_max_tokens=123), sleep=SleepRecorder())
        client.score(_context(), "rules")
        assert oracle.max_tokens == [123]
