"""Data models for liquidation events and connection state."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from liquidation_relay.core.types import ConnectionStatus, Exchange, Side


@dataclass(frozen=True)
class LiquidationEvent:
    """Normalized liquidation event.

    ``price`` and ``quantity`` are ``None`` when the venue did not supply a
    usable number. ``None`` is the unknown marker: it is never replaced by zero.
    """

    exchange: Exchange
    instrument: str
    side: Side
    price: Decimal | None
    quantity: Decimal | None
    observed_at: datetime
    received_at: datetime = field(default_factory=datetime.now)

    @property
    def notional_usd(self) -> Decimal | None:
        """Price times quantity, or None when either is unknown."""
        if self.price is None or self.quantity is None:
            return None
        return self.price * self.quantity


@dataclass
class ConnectionState:
    """Mutable state owned by a single stream connection."""

    exchange: Exchange
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    reconnect_attempts: int = 0
    last_ping_sent_at: datetime | None = None
    last_connected_at: datetime | None = None
    last_disconnect_reason: str = ""
    events_received: int = 0

    def mark_connecting(self) -> None:
        self.status = ConnectionStatus.CONNECTING

    def mark_connected(self) -> None:
        self.status = ConnectionStatus.CONNECTED
        self.reconnect_attempts = 0
        self.last_connected_at = datetime.now()

    def mark_disconnected(self, reason: str) -> None:
        self.status = ConnectionStatus.DISCONNECTED
        self.reconnect_attempts += 1
        self.last_disconnect_reason = reason
        self.last_ping_sent_at = None

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "reconnect_attempts": self.reconnect_attempts,
            "last_connected_at": self.last_connected_at.isoformat()
            if self.last_connected_at
            else None,
            "last_disconnect_reason": self.last_disconnect_reason,
            "events_received": self.events_received,
        }


@dataclass(frozen=True)
class OutboundMessage:
    """Text message waiting in the delivery queue."""

    text: str
    enqueued_at: datetime = field(default_factory=datetime.now)
