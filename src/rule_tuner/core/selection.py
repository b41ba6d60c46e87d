"""Low-score selection: the worst decile of an evaluation pass."""

from __future__ import annotations

import math

from .evaluator import EvalResult

DEFAULT_FRACTION = 0.1


def select_diagnostic_sample(
    results: list[EvalResult], fraction: float = DEFAULT_FRACTION
) -> list[EvalResult]:
    """Return the lowest-scoring ``ceil(n * fraction)`` results, at least one.

    The sort is stable, so tied scores keep their evaluation order. Only an
    empty input yields an empty sample.
    """
    if not results:
        return []
    ranked = sorted(results, key=lambda r: r.score)
    count = max(1, math.ceil(len(ranked) * fraction))
    return ranked[:count]


def print_diagnostic_sample(sample: list[EvalResult], limit: int = 10) -> None:
    """Print the worst entries of a diagnostic sample."""
    print(f"\nDiagnostic sample: {len(sample)} lowest-scoring messages")
    if not sample:
        return
    print(f"\nWORST {min(limit, len(sample))}:")
    for i, r in enumerate(sample[:limit], 1):
        print(f"  {i}. Score {r.score}/100")
        print(f"     Conv: {r.conversation_id}")
        print(f"     Msg: {r.bot_message[:60]!r}")
        print(f"     Issue: {r.feedback[:100]}")


__all__ = ["select_diagnostic_sample", "print_diagnostic_sample"]
