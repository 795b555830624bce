"""Global type definitions."""

from enum import Enum


class Exchange(str, Enum):
    """Supported liquidation feed venues."""

    OKX = "okx"
    BINANCE = "binance"
    HUOBI = "huobi"

    @property
    def label(self) -> str:
        """Display name used in chat messages."""
        return _EXCHANGE_LABELS[self]


_EXCHANGE_LABELS = {
    Exchange.OKX: "OKX",
    Exchange.BINANCE: "Binance",
    Exchange.HUOBI: "Huobi",
}


class Side(str, Enum):
    """Side of the liquidation order."""

    BUY = "buy"
    SELL = "sell"


class ConnectionStatus(str, Enum):
    """Streaming connection status."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class KeepAliveStyle(str, Enum):
    """How a venue keeps its socket alive."""

    PROTOCOL_PING = "protocol_ping"  # WebSocket ping control frame
    APPLICATION_PING = "application_ping"  # Text/JSON ping message
    SERVER_PING = "server_ping"  # Server pings, client answers


class RatePolicy(str, Enum):
    """Outbound delivery rate policy."""

    TOKEN_BUCKET = "token_bucket"
    FIXED_INTERVAL = "fixed_interval"
