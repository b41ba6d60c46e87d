"""chatbot-rule-tuner: Judge-driven revision of chatbot business rules.

Scores chatbot conversations against textual business rules with an LLM
judge, diagnoses the worst responses, asks the judge for rule edits and
A/B-tests the revised rules on a held-out split.

Public API:
    TunerConfig: Run configuration
    Oracle: Interface to the judge model
    Conversation, Message, Sender: Transcript data model
    EvalResult: Per-turn judge score
    Evaluator: Scoring pass over conversations
    ScoringClient: Retrying judge client
    select_diagnostic_sample: Worst-decile selection
    RuleReviser, RuleImprovement, apply_improvements: Rule revision
    run_ab_test, calc_stats, SplitStats: Control/test comparison
    run_pipeline: One full tuning cycle
"""

from __future__ import annotations

__version__ = "0.1.0"

from .adapters.base import Oracle
from .config import TunerConfig, load_config
from .core.evaluator import EvalResult, Evaluator
from .core.scoring import Judgement, ScoringClient
from .core.selection import select_diagnostic_sample
from .core.transcript import Conversation, JudgeableTurn, Message, Sender, index_turns
from .self_improve.ab_test import ABTestResult, SplitStats, calc_stats, run_ab_test
from .self_improve.rule_reviser import (
    RevisionProposal,
    RuleImprovement,
    RuleReviser,
    apply_improvements,
)
from .self_improve.runner import PipelineResult, run_pipeline

__all__ = [
    # Config
    "TunerConfig",
    "load_config",
    # Adapters
    "Oracle",
    # Core
    "Conversation",
    "Message",
    "Sender",
    "JudgeableTurn",
    "index_turns",
    "Judgement",
    "ScoringClient",
    "EvalResult",
    "Evaluator",
    "select_diagnostic_sample",
    # Self-improvement
    "RuleImprovement",
    "RevisionProposal",
    "RuleReviser",
    "apply_improvements",
    "SplitStats",
    "ABTestResult",
    "calc_stats",
    "run_ab_test",
    "PipelineResult",
    "run_pipeline",
]
