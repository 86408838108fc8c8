"""Failure classification and bounded retry decisions.

The lookup client asks :meth:`RetryPolicy.next_delay` what to do after a
failed attempt.  The answer is either ``None`` (terminal: cache "no result"
and stop) or the number of seconds to wait before re-entering the pipeline.

    NOT_FOUND            terminal
    INVALID_CREDENTIALS  terminal
    UNKNOWN              terminal
    RATE_LIMITED         min(base * 2**attempt, cap), max_rate_limit_retries times
    TRANSIENT            step * attempt (linear), max_timeout_retries times

Counters live in a per-lookup :class:`RetryContext`; nothing is shared
between lookups.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.config.lookup_clients import LookupClientConfig
from src.utils.errors import FailureKind

TERMINAL_KINDS = frozenset(
    {FailureKind.NOT_FOUND, FailureKind.INVALID_CREDENTIALS, FailureKind.UNKNOWN}
)


@dataclass
class RetryContext:
    """Per-lookup retry counters."""

    transient_retries: int = 0
    rate_limit_retries: int = 0

    @property
    def attempts(self) -> int:
        """Number of attempts made so far, assuming the current one failed."""
        return 1 + self.transient_retries + self.rate_limit_retries


class RetryPolicy:
    """Decide whether and when a failed lookup is retried."""

    def __init__(self, config: LookupClientConfig) -> None:
        self._config = config

    def rate_limit_backoff(self, attempt: int) -> float:
        """Exponential backoff for the *attempt*-th rate-limit retry (0-based)."""
        base = self._config.rate_limit_backoff_base * (2**attempt)
        return min(base, self._config.rate_limit_backoff_cap)

    def transient_backoff(self, attempt: int) -> float:
        """Linear backoff for the *attempt*-th transient retry (0-based)."""
        return self._config.timeout_backoff_step * (attempt + 1)

    def next_delay(self, kind: FailureKind, context: RetryContext) -> float | None:
        """Return the wait before the next attempt, or ``None`` if terminal.

        Consumes one retry from *context* when a retry is granted.
        """
        if kind in TERMINAL_KINDS:
            return None

        if kind is FailureKind.RATE_LIMITED:
            if context.rate_limit_retries >= self._config.max_rate_limit_retries:
                return None
            delay = self.rate_limit_backoff(context.rate_limit_retries)
            context.rate_limit_retries += 1
            return delay

        if context.transient_retries >= self._config.max_timeout_retries:
            return None
        delay = self.transient_backoff(context.transient_retries)
        context.transient_retries += 1
        return delay
