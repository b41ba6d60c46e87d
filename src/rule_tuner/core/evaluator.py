"""Evaluator: score every judgeable bot turn against a rule document.

Philosophy:
- Best effort: one failed turn is logged and skipped, the pass continues
- Strictly sequential: one oracle call in flight, results in turn order
- Paced: a fixed delay between successive calls, none after the last

Public API:
    EvalResult: One scored bot turn
    Evaluator: Runs a scoring pass over a conversation collection
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from ..config import TunerConfig
from .scoring import ScoringClient
from .transcript import Conversation, Message, index_turns

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvalResult:
    """The judge's score for one bot turn.

    Attributes:
        conversation_id: Conversation the turn belongs to
        message_index: Index of the BOT message within the conversation
        bot_message: Copy of the scored message text
        score: Judge score, nominally 0-100 (not clamped)
        feedback: Short judge feedback
        context: The window the judge saw, kept for diagnosis
    """

    conversation_id: str
    message_index: int
    bot_message: str
    score: float
    feedback: str
    context: tuple[Message, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "message_index": self.message_index,
            "bot_message": self.bot_message,
            "score": self.score,
            "feedback": self.feedback,
            "context": [m.to_dict() for m in self.context],
        }


class Evaluator:
    """Drives the ScoringClient over every judgeable turn, in order.

    Args:
        scoring_client: Client used to score each turn
        config: Supplies the pacing delay
        sleep: Sleep function used for pacing (injectable for tests)
    """

    def __init__(
        self,
        scoring_client: ScoringClient,
        config: TunerConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._client = scoring_client
        self._config = config
        self._sleep = sleep

    def evaluate(self, conversations: list[Conversation], rules: str) -> list[EvalResult]:
        """Score every BOT message of ``conversations`` under ``rules``.

        Failed turns (transport, exhausted rate limit, malformed reply) are
        skipped, so the result list can be shorter than the turn list.
        """
        turns = index_turns(conversations)
        total = len(turns)
        logger.info(
            "Evaluating %d bot messages (pacing %.0fms)", total, self._config.pacing_delay * 1000
        )

        results: list[EvalResult] = []
        start = time.time()

        for i, turn in enumerate(turns):
            pct = round((i + 1) / total * 100)
            try:
                judgement = self._client.score(turn.context, rules)
            except Exception as e:
                logger.warning(
                    "[%d/%d] Failed to score conv %s message %d: %s",
                    i + 1,
                    total,
                    turn.conversation_id,
                    turn.message_index,
                    e,
                )
            else:
                logger.info(
                    "[%d/%d] (%d%%) Conv %s: %s - %s",
                    i + 1,
                    total,
                    pct,
                    turn.conversation_id,
                    judgement.score,
                    judgement.feedback,
                )
                results.append(
                    EvalResult(
                        conversation_id=turn.conversation_id,
                        message_index=turn.message_index,
                        bot_message=turn.bot_message,
                        score=judgement.score,
                        feedback=judgement.feedback,
                        context=turn.context,
                    )
                )

            if i < total - 1:
                self._sleep(self._config.pacing_delay)

        logger.info(
            "Evaluation complete: %d/%d processed in %.1fs", len(results), total, time.time() - start
        )
        return results


__all__ = ["EvalResult", "Evaluator"]
