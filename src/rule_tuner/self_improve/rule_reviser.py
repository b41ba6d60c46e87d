"""Rule reviser: ask the judge for rule edits and apply them.

Uses the worst-scoring turns of an evaluation pass to ask the judge for
literal text edits to the rule document.

Philosophy:
- The diagnostic sample drives the edits, not guesses
- Edits are literal substring replacements, applied in the returned order
- An edit whose original text is not found is skipped, never an error
- A failed revision call is fatal: there is no partial improvement

Public API:
    RuleImprovement: One proposed edit
    RevisionProposal: All proposed edits plus the judge's summary
    RuleReviser: Builds the revision prompt and parses the reply
    build_revision_prompt: Prompt embedding the diagnostic examples
    parse_revision: Strictly parse a revision reply
    apply_improvements: Apply edits to a rule document (copy-on-write)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..config import TunerConfig
from ..core.evaluator import EvalResult
from ..core.scoring import ScoringClient, load_reply_object
from ..core.transcript import render_context
from ..errors import ReplyParseError

logger = logging.getLogger(__name__)

_IMPROVEMENT_FIELDS = {
    "ruleName": "rule_name",
    "originalText": "original_text",
    "improvedText": "improved_text",
    "reason": "reason",
}


@dataclass
class RuleImprovement:
    """A proposed edit to the rule document.

    Attributes:
        rule_name: Which rule the edit targets
        original_text: Exact text to replace (first occurrence)
        improved_text: Replacement text
        reason: Why the judge proposes the change
    """

    rule_name: str
    original_text: str
    improved_text: str
    reason: str = ""

    def to_dict(self) -> dict[str, str]:
        return {wire: getattr(self, attr) for wire, attr in _IMPROVEMENT_FIELDS.items()}


@dataclass
class RevisionProposal:
    """The judge's proposed edits and a short summary of them."""

    improvements: list[RuleImprovement] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "improvements": [imp.to_dict() for imp in self.improvements],
            "summary": self.summary,
        }


def build_revision_prompt(
    sample: list[EvalResult], current_rules: str, max_examples: int = 15
) -> str:
    """Build the rule revision prompt from the first ``max_examples`` results."""
    examples = []
    for i, r in enumerate(sample[:max_examples], 1):
        examples.append(
            f"EXAMPLE {i} (Score: {r.score}/100):\n"
            f"{render_context(r.context)}\n"
            f"Problem: {r.feedback}\n"
            "---"
        )
    examples_text = "\n\n".join(examples)

    return f"""You are an expert at optimizing prompts for sales chatbots.

CURRENT RULES:
{current_rules}

PROBLEMS:
{examples_text}

Analyze the problems and propose specific improvements to the rules.

GUIDELINES:
1. Be specific
2. Preserve the existing structure and format
3. Add explicit prohibitions
4. Reinforce critical points
5. Be concise

Each originalText MUST be copied exactly from the current rules.

Reply ONLY with a JSON object (no markdown, no code fences):
{{
  "improvements": [
    {{
      "ruleName": "<name>",
      "originalText": "<original>",
      "improvedText": "<improved>",
      "reason": "<reason>"
    }}
  ],
  "summary": "<summary>"
}}"""


def _parse_improvement(index: int, raw: Any, reply: str) -> RuleImprovement:
    if not isinstance(raw, dict):
        raise ReplyParseError(f"improvements[{index}] must be an object", raw=reply)
    values: dict[str, str] = {}
    for wire, attr in _IMPROVEMENT_FIELDS.items():
        value = raw.get(wire)
        if not isinstance(value, str):
            raise ReplyParseError(
                f"improvements[{index}].{wire} must be a string, got {value!r}", raw=reply
            )
        values[attr] = value
    return RuleImprovement(**values)


def parse_revision(raw: str) -> RevisionProposal:
    """Parse and validate a revision reply.

    Raises:
        ReplyParseError: Non-JSON reply, ``improvements`` not a list of
            complete edit objects, or ``summary`` not a string
    """
    parsed = load_reply_object(raw)

    items = parsed.get("improvements")
    if not isinstance(items, list):
        raise ReplyParseError("Reply 'improvements' must be a list", raw=raw)
    summary = parsed.get("summary")
    if not isinstance(summary, str):
        raise ReplyParseError(f"Reply 'summary' must be a string, got {summary!r}", raw=raw)

    improvements = [_parse_improvement(i, item, raw) for i, item in enumerate(items)]
    return RevisionProposal(improvements=improvements, summary=summary)


def apply_improvements(rules: str, improvements: list[RuleImprovement]) -> str:
    """Apply edits in order, replacing the first occurrence of each original text.

    Edits whose original text is absent from the working document are
    skipped. Later edits see the output of earlier ones.
    """
    improved = rules
    for imp in improvements:
        if not imp.original_text or imp.original_text not in improved:
            logger.debug("Skipping edit for %r: original text not found", imp.rule_name)
            continue
        improved = improved.replace(imp.original_text, imp.improved_text, 1)
    return improved


class RuleReviser:
    """Asks the judge for rule edits based on a diagnostic sample.

    Args:
        scoring_client: Shared retrying oracle client
        config: Supplies the revision token budget and example cap
    """

    def __init__(self, scoring_client: ScoringClient, config: TunerConfig):
        self._client = scoring_client
        self._config = config

    def revise(self, sample: list[EvalResult], current_rules: str) -> RevisionProposal:
        """Propose rule edits. Any call or parse failure propagates."""
        prompt = build_revision_prompt(
            sample, current_rules, max_examples=self._config.max_diagnostic_examples
        )
        raw = self._client.complete(prompt, self._config.revision_max_tokens)
        proposal = parse_revision(raw)
        logger.info("Judge proposed %d rule edits", len(proposal.improvements))
        return proposal


__all__ = [
    "RuleImprovement",
    "RevisionProposal",
    "RuleReviser",
    "build_revision_prompt",
    "parse_revision",
    "apply_improvements",
]
