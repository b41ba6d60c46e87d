"""Core evaluation logic: transcript indexing, scoring, evaluation, selection."""

from __future__ import annotations

from .evaluator import EvalResult, Evaluator
from .scoring import Judgement, ScoringClient, parse_judgement, strip_code_fences
from .selection import select_diagnostic_sample
from .transcript import (
    Conversation,
    JudgeableTurn,
    Message,
    Sender,
    context_window,
    index_turns,
)

__all__ = [
    "Conversation",
    "Message",
    "Sender",
    "JudgeableTurn",
    "context_window",
    "index_turns",
    "Judgement",
    "ScoringClient",
    "parse_judgement",
    "strip_code_fences",
    "EvalResult",
    "Evaluator",
    "select_diagnostic_sample",
]
