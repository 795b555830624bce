"""Outbound notification transports."""

from liquidation_relay.notifications.telegram import DeliveryResult, TelegramTransport

__all__ = [
    "DeliveryResult",
    "TelegramTransport",
]
