"""Outbound delivery module - rate policies and the delivery queue."""

from liquidation_relay.delivery.queue import DeliveryQueue, Payload, truncate
from liquidation_relay.delivery.rate_limit import (
    FixedIntervalLimiter,
    RateLimiter,
    TokenBucket,
    create_rate_limiter,
)

__all__ = [
    "DeliveryQueue",
    "FixedIntervalLimiter",
    "Payload",
    "RateLimiter",
    "TokenBucket",
    "create_rate_limiter",
    "truncate",
]
