"""One full rule tuning cycle.

Implements a single pass of:
  SAMPLE -> EVALUATE -> SELECT -> REVISE -> APPLY -> SAVE -> A/B TEST

Each run:
1. Optionally sample conversations
2. Score every bot turn under the original rules
3. Select the worst-scoring decile
4. Ask the judge for rule edits based on that sample
5. Apply the edits and save the revised rules
6. Split conversations into control/test and re-score the test half
7. Report control vs test statistics

Philosophy:
- Measure first, change second
- Evaluation degrades gracefully; revision failures abort the run
- Log everything for reproducibility

Public API:
    PipelineResult: Everything a run produced
    run_pipeline: Execute one cycle
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from ..adapters.base import Oracle
from ..config import TunerConfig, make_rng
from ..core.evaluator import EvalResult, Evaluator
from ..core.scoring import ScoringClient
from ..core.selection import print_diagnostic_sample, select_diagnostic_sample
from ..core.transcript import Conversation
from ..data.loaders import sample_conversations, write_rules
from .ab_test import ABTestResult, calc_stats, print_ab_report, run_ab_test
from .rule_reviser import RevisionProposal, RuleReviser, apply_improvements

logger = logging.getLogger(__name__)

REVISED_RULES_FILE = "revised_rules.txt"
REPORT_FILE = "pipeline_report.json"


@dataclass
class PipelineResult:
    """Complete result of one tuning cycle."""

    config: dict[str, Any]
    conversation_ids: list[str]
    results: list[EvalResult]
    diagnostic_sample: list[EvalResult]
    proposal: RevisionProposal
    revised_rules: str
    ab_test: ABTestResult
    output_files: dict[str, str] = field(default_factory=dict)
    total_duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": self.config,
            "conversation_ids": self.conversation_ids,
            "baseline_stats": calc_stats(
                self.results, self.config.get("good_score_threshold", 70.0)
            ).to_dict(),
            "num_results": len(self.results),
            "diagnostic_sample": [r.to_dict() for r in self.diagnostic_sample],
            "revision": self.proposal.to_dict(),
            "ab_test": self.ab_test.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "output_files": self.output_files,
            "total_duration_seconds": round(self.total_duration_seconds, 2),
        }


def _banner(title: str) -> None:
    print(f"\n{'=' * 70}")
    print(title)
    print("=" * 70)


def run_pipeline(
    conversations: list[Conversation],
    rules: str,
    oracle: Oracle,
    config: TunerConfig,
    rng: random.Random | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineResult:
    """Run evaluation, revision and the A/B test once.

    Args:
        conversations: Full conversation collection
        rules: Original rule document
        oracle: Judge model used for scoring and revision
        config: Run configuration
        rng: Random source for sampling and splitting (defaults to config.seed)
        sleep: Sleep function for retry and pacing waits

    Returns:
        PipelineResult with every intermediate product

    Raises:
        OracleError, ReplyParseError: If the revision call fails
    """
    if rng is None:
        rng = make_rng(config.seed)

    output_dir = Path(config.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    start_time = time.time()

    client = ScoringClient(oracle, config, sleep=sleep)
    evaluator = Evaluator(client, config, sleep=sleep)
    reviser = RuleReviser(client, config)

    print("=" * 70)
    print("RULE TUNER")
    print("=" * 70)
    print(f"Judge: {oracle.name}")
    print(f"Conversations: {len(conversations)}")
    if config.use_sampling:
        print(f"Sampling: {config.sample_size} conversations")
    print(f"Output: {config.output_dir}")

    convos = (
        sample_conversations(conversations, config.sample_size, rng)
        if config.use_sampling
        else list(conversations)
    )

    # Phase 1: EVALUATE
    _banner("[Phase 1/3] EVALUATION")
    results = evaluator.evaluate(convos, rules)
    baseline = calc_stats(results, config.good_score_threshold)
    print(f"Scored {len(results)} bot messages, average {baseline.avg_score}")
    sample = select_diagnostic_sample(results, config.diagnostic_fraction)
    print_diagnostic_sample(sample)

    # Phase 2: IMPROVE
    _banner("[Phase 2/3] IMPROVEMENT")
    proposal = reviser.revise(sample, rules)
    print(f"Summary: {proposal.summary}")
    print(f"{len(proposal.improvements)} rule edits proposed")
    revised_rules = apply_improvements(rules, proposal.improvements)

    rules_path = write_rules(output_dir / REVISED_RULES_FILE, revised_rules)
    print(f"Revised rules saved to {rules_path}")

    # Phase 3: A/B TEST
    _banner("[Phase 3/3] A/B TEST")
    ab = run_ab_test(
        results, convos, revised_rules, evaluator, rng, good_threshold=config.good_score_threshold
    )
    print_ab_report(ab)

    result = PipelineResult(
        config=config.to_dict(),
        conversation_ids=[c.conversation_id for c in convos],
        results=results,
        diagnostic_sample=sample,
        proposal=proposal,
        revised_rules=revised_rules,
        ab_test=ab,
        output_files={"revised_rules": str(rules_path)},
        total_duration_seconds=time.time() - start_time,
    )

    report_path = output_dir / REPORT_FILE
    result.output_files["report"] = str(report_path)
    with open(report_path, "w") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)

    logger.info("Pipeline finished in %.1fs", result.total_duration_seconds)
    print(f"\nReport saved to {report_path}")
    return result


__all__ = ["PipelineResult", "run_pipeline", "REVISED_RULES_FILE", "REPORT_FILE"]
