"""Self-improvement of the rule document.

Diagnoses the worst-scoring bot turns, asks the judge for rule edits,
applies them and validates the revision on a control/test split.

Philosophy:
- Evaluate -> Select -> Revise -> Apply -> A/B test, once per run
- Edits are literal text replacements the judge proposes
- Control keeps its original scores; only the test half is re-scored
"""

from __future__ import annotations

from .ab_test import (
    ABTestResult,
    SplitStats,
    calc_stats,
    compute_improvement_pct,
    filter_results,
    run_ab_test,
    split_conversations,
)
from .rule_reviser import (
    RevisionProposal,
    RuleImprovement,
    RuleReviser,
    apply_improvements,
    parse_revision,
)

__all__ = [
    # rule_reviser
    "RuleImprovement",
    "RevisionProposal",
    "RuleReviser",
    "parse_revision",
    "apply_improvements",
    # ab_test
    "SplitStats",
    "ABTestResult",
    "split_conversations",
    "filter_results",
    "calc_stats",
    "compute_improvement_pct",
    "run_ab_test",
]
