"""Rolling liquidation statistics over sliding time windows."""

import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import RLock

from liquidation_relay.core.types import Side
from liquidation_relay.data.models import LiquidationEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowSummary:
    """Counts for one horizon. Only produced for non-empty windows."""

    horizon_seconds: float
    total: int
    buy_count: int
    sell_count: int

    @property
    def buy_percent(self) -> float:
        return round(self.buy_count / self.total * 100, 1)

    @property
    def sell_percent(self) -> float:
        return round(self.sell_count / self.total * 100, 1)


class SlidingWindow:
    """Insertion-ordered (timestamp, side) entries within a fixed duration.

    Entries must be appended with non-decreasing timestamps; stale entries
    are pruned lazily from the left before each read or write.
    """

    def __init__(self, duration_seconds: float) -> None:
        if duration_seconds <= 0:
            raise ValueError("Window duration must be positive")
        self._duration = timedelta(seconds=duration_seconds)
        self._entries: deque[tuple[datetime, Side]] = deque()

    @property
    def duration_seconds(self) -> float:
        return self._duration.total_seconds()

    def prune(self, now: datetime) -> None:
        cutoff = now - self._duration
        while self._entries and self._entries[0][0] < cutoff:
            self._entries.popleft()

    def add(self, timestamp: datetime, side: Side, now: datetime) -> None:
        self.prune(now)
        self._entries.append((timestamp, side))

    def counts(self, now: datetime) -> tuple[int, int]:
        """Return (buy_count, sell_count) after pruning."""
        self.prune(now)
        buys = sum(1 for _, side in self._entries if side is Side.BUY)
        return buys, len(self._entries) - buys

    def __len__(self) -> int:
        return len(self._entries)


class StatsAggregator:
    """Thread-safe set of sliding windows, one per reporting horizon.

    Windows are keyed by local receipt time so insertion order matches time
    order for every venue.
    """

    def __init__(
        self,
        horizons_seconds: Iterable[float],
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize aggregator.

        Args:
            horizons_seconds: Window durations in seconds (e.g. 300, 900)
            clock: Source of "now" (injectable for tests)
        """
        self._windows = {float(h): SlidingWindow(h) for h in horizons_seconds}
        if not self._windows:
            raise ValueError("At least one horizon is required")
        self._clock = clock
        self._lock = RLock()

    @property
    def horizons(self) -> list[float]:
        return sorted(self._windows)

    def record_event(self, event: LiquidationEvent) -> None:
        """Append the event to every window."""
        with self._lock:
            now = self._clock()
            for window in self._windows.values():
                window.add(event.received_at, event.side, now)

    def summarize(self, horizon_seconds: float) -> WindowSummary | None:
        """Summarize one horizon, or None when the window is empty.

        Raises:
            KeyError: If the horizon is not configured
        """
        with self._lock:
            window = self._windows[float(horizon_seconds)]
            buys, sells = window.counts(self._clock())
        total = buys + sells
        if total == 0:
            return None
        return WindowSummary(
            horizon_seconds=float(horizon_seconds),
            total=total,
            buy_count=buys,
            sell_count=sells,
        )

    def recent_counts(self) -> dict[float, int]:
        """Event count per horizon (for health reporting)."""
        with self._lock:
            now = self._clock()
            result = {}
            for horizon, window in self._windows.items():
                window.prune(now)
                result[horizon] = len(window)
            return result
