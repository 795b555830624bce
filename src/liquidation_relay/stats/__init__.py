"""Rolling statistics module."""

from liquidation_relay.stats.aggregator import SlidingWindow, StatsAggregator, WindowSummary

__all__ = [
    "SlidingWindow",
    "StatsAggregator",
    "WindowSummary",
]
