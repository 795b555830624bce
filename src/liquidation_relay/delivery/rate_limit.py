"""Rate policies for the outbound delivery queue."""

import time
from collections.abc import Callable
from typing import Protocol

from liquidation_relay.core.types import RatePolicy


class RateLimiter(Protocol):
    """Grants send permits; consulted by the queue on every drain cycle."""

    def start_cycle(self) -> None: ...

    def try_acquire(self) -> bool: ...


class TokenBucket:
    """Token bucket refilled from elapsed wall-clock time.

    capacity: max tokens (burst size).
    refill_rate: tokens added per second.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.capacity = max(float(capacity), 1.0)
        self.refill_rate = max(float(refill_rate), 0.0)
        self._clock = clock
        self._tokens = self.capacity
        self._last = clock()

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last)
        self._last = now
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)

    def start_cycle(self) -> None:
        self._refill()

    def try_acquire(self) -> bool:
        self._refill()
        if self._tokens < 1:
            return False
        self._tokens -= 1
        return True


class FixedIntervalLimiter:
    """At most one send per drain cycle."""

    def __init__(self) -> None:
        self._available = False

    def start_cycle(self) -> None:
        self._available = True

    def try_acquire(self) -> bool:
        if not self._available:
            return False
        self._available = False
        return True


def create_rate_limiter(
    policy: RatePolicy,
    capacity: float = 20,
    refill_rate: float = 1.0,
) -> RateLimiter:
    """Build the limiter for a configured policy."""
    if policy == RatePolicy.FIXED_INTERVAL:
        return FixedIntervalLimiter()
    return TokenBucket(capacity=capacity, refill_rate=refill_rate)
