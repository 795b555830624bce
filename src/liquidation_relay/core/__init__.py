"""Core infrastructure module."""

from liquidation_relay.core.types import (
    ConnectionStatus,
    Exchange,
    KeepAliveStyle,
    RatePolicy,
    Side,
)

__all__ = [
    "ConnectionStatus",
    "Exchange",
    "KeepAliveStyle",
    "RatePolicy",
    "Side",
]
