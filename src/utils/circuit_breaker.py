"""Cooldown circuit breaker for external APIs that signal overload.

The breaker has two states.  **Closed**: calls proceed.  **Open**: every
call short-circuits to the caller's fallback.  It re-closes on its own once
``now >= cooldown_until``; there is no half-open probing state, the next real
rate-limit signal simply opens it again.

``trip()`` never shortens an existing cooldown, so overlapping trips from
concurrent lookups are safe.
"""

from __future__ import annotations

import math
import time
from typing import Callable


class CircuitBreaker:
    """Per-API cooldown breaker.

    Parameters
    ----------
    name:
        Provider name, used in log lines.
    clock:
        Monotonic time source (injectable for tests).
    """

    def __init__(self, name: str, clock: Callable[[], float] = time.monotonic) -> None:
        self._name = name
        self._clock = clock
        self._cooldown_until = 0.0

    @property
    def name(self) -> str:
        return self._name

    @property
    def cooldown_until(self) -> float:
        return self._cooldown_until

    @property
    def is_permanently_open(self) -> bool:
        return math.isinf(self._cooldown_until)

    def trip(self, cooldown: float) -> float:
        """Open the breaker for at least *cooldown* seconds from now.

        Returns the resulting ``cooldown_until``.
        """
        self._cooldown_until = max(self._cooldown_until, self._clock() + cooldown)
        return self._cooldown_until

    def trip_permanently(self) -> None:
        """Open the breaker until the process restarts (bad credentials)."""
        self._cooldown_until = math.inf

    def is_open(self) -> bool:
        return self._clock() < self._cooldown_until

    def remaining(self) -> float:
        """Seconds until the breaker closes (0.0 when already closed)."""
        return max(0.0, self._cooldown_until - self._clock())
