"""Liquidation Relay - forwards exchange liquidation feeds to a Telegram chat."""

__version__ = "0.1.0"

# Re-export submodules for convenient access
from liquidation_relay import core, data, delivery, notifications, stats, streams

__all__ = [
    "__version__",
    "core",
    "data",
    "delivery",
    "notifications",
    "stats",
    "streams",
]
