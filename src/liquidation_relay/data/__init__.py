"""Data module - liquidation event models and venue normalization."""

from liquidation_relay.data.models import ConnectionState, LiquidationEvent, OutboundMessage

__all__ = [
    "ConnectionState",
    "LiquidationEvent",
    "OutboundMessage",
]
