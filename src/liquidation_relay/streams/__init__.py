"""Streaming connections to venue liquidation feeds."""

from liquidation_relay.streams.connection import StreamConnection
from liquidation_relay.streams.venues import BINANCE, HUOBI, OKX, VENUES, VenueDescriptor

__all__ = [
    "BINANCE",
    "HUOBI",
    "OKX",
    "StreamConnection",
    "VENUES",
    "VenueDescriptor",
]
