"""Oracle interface: the judge model seen as a black box.

Philosophy:
- The judge is untrusted: it returns text that is expected, not guaranteed,
  to be a JSON object
- One method: complete(prompt, max_tokens) -> str
- Rate limiting is signalled with RateLimitError so callers can retry it
  separately from every other failure

Public API:
    Oracle: Abstract interface for judge models
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Oracle(ABC):
    """Interface for the external scoring/revision model.

    Example::

        class EchoOracle(Oracle):
            def complete(self, prompt: str, max_tokens: int) -> str:
                return '{"score": 50, "feedback": "ok"}'
    """

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int) -> str:
        """Send a prompt and return the raw reply text.

        Raises:
            RateLimitError: The oracle asked the caller to back off
            OracleError: Any other transport failure
        """

    @property
    def name(self) -> str:
        """Human-readable oracle name."""
        return self.__class__.__name__


__all__ = ["Oracle"]
