"""Delay schedules for stream-creation retries and group visibility polling.

ConstantBackoff spaces stream creation attempts evenly. ExponentialBackoff
grows the visibility poll interval up to a cap, optionally jittered so that
many processes starting together do not poll in lockstep.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    """Maps a 0-indexed retry number to the seconds to wait before it."""

    def delay(self, attempt: int) -> float: ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """``base * multiplier**attempt`` seconds, capped at ``max_delay``.

    With ``jitter`` the capped value is scaled by a random factor in [0.5, 1.5).
    """

    base: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: bool = True
    rand: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def delay(self, attempt: int) -> float:
        capped = min(self.base * self.multiplier ** max(attempt, 0), self.max_delay)
        if not self.jitter:
            return capped
        return capped * (0.5 + self.rand())


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Same wait before every retry."""

    delay_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.delay_seconds
