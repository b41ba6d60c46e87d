"""Error taxonomy for the rule tuner.

Public API:
    RuleTunerError: Base class for every error raised by this package
    OracleError: Transport failure talking to the judge model
    RateLimitError: The judge model asked us to slow down (retried)
    ReplyParseError: The judge replied with something we cannot use (never retried)
    DataFormatError: Conversation or rule input is malformed
    ConfigError: Configuration file or values are invalid
    UndefinedImprovementError: Improvement percentage has no defined value
"""

from __future__ import annotations


class RuleTunerError(Exception):
    """Base class for rule tuner errors."""


class OracleError(RuleTunerError):
    """The oracle call failed in transport."""


class RateLimitError(OracleError):
    """The oracle rejected the call because of rate limiting."""


class ReplyParseError(RuleTunerError):
    """The oracle reply is not valid JSON or misses required fields."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class DataFormatError(RuleTunerError):
    """Conversation or rule input could not be interpreted."""


class ConfigError(RuleTunerError):
    """Invalid configuration."""


class UndefinedImprovementError(RuleTunerError):
    """The control average is zero, so a relative improvement is undefined."""


__all__ = [
    "RuleTunerError",
    "OracleError",
    "RateLimitError",
    "ReplyParseError",
    "DataFormatError",
    "ConfigError",
    "UndefinedImprovementError",
]
