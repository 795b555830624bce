"""Venue descriptors: everything venue-specific about a liquidation stream."""

import gzip
import json
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from liquidation_relay.core.types import Exchange, KeepAliveStyle

OKX_PUBLIC_URL = "wss://ws.okx.com:8443/ws/v5/public"
BINANCE_FUTURES_URL = "wss://fstream.binance.com/ws"
HUOBI_NOTIFICATION_URL = "wss://api.hbdm.com/linear-swap-notification"

Frame = str | bytes
ControlMessage = str | dict[str, Any]


def decode_text(raw: Frame) -> str:
    return raw.decode("utf-8") if isinstance(raw, bytes) else raw


def decode_gzip(raw: Frame) -> str:
    """Huobi sends gzip-compressed binary frames."""
    if isinstance(raw, bytes):
        return gzip.decompress(raw).decode("utf-8")
    return raw


def _no_server_ping(message: Any) -> dict[str, Any] | None:
    return None


@dataclass(frozen=True)
class VenueDescriptor:
    """Connection parameters and wire conventions of one venue."""

    exchange: Exchange
    url: str
    build_subscribe: Callable[[list[str]], list[ControlMessage]]
    keepalive: KeepAliveStyle
    ping_interval: float = 30.0
    ping_message: str = "ping"
    keepalive_replies: frozenset[str] = field(default_factory=frozenset)
    decode: Callable[[Frame], str] = decode_text
    server_ping_reply: Callable[[Any], dict[str, Any] | None] = _no_server_ping
    uses_instrument_list: bool = False

    def is_keepalive_reply(self, text: str) -> bool:
        return text.strip() in self.keepalive_replies


def okx_subscribe(instruments: list[str]) -> list[ControlMessage]:
    return [
        {
            "op": "subscribe",
            "args": [{"channel": "liquidation-orders", "instType": "SWAP"}],
        }
    ]


def binance_subscribe(instruments: list[str]) -> list[ControlMessage]:
    return [{"method": "SUBSCRIBE", "params": ["!forceOrder@arr"], "id": 1}]


def huobi_subscribe(instruments: list[str]) -> list[ControlMessage]:
    """One topic per contract; the wildcard topic when no list is known."""
    contracts = instruments or ["*"]
    return [
        {
            "op": "sub",
            "cid": uuid.uuid4().hex[:12],
            "topic": f"public.{contract}.liquidation_orders",
        }
        for contract in contracts
    ]


def huobi_pong(message: Any) -> dict[str, Any] | None:
    """Answer ``{"ping": ts}`` and ``{"op": "ping", "ts": ts}`` server pings."""
    if not isinstance(message, dict):
        return None
    if "ping" in message:
        return {"pong": message["ping"]}
    if message.get("op") == "ping":
        return {"op": "pong", "ts": message.get("ts")}
    return None


OKX = VenueDescriptor(
    exchange=Exchange.OKX,
    url=OKX_PUBLIC_URL,
    build_subscribe=okx_subscribe,
    keepalive=KeepAliveStyle.APPLICATION_PING,
    ping_interval=15.0,
    ping_message="ping",
    keepalive_replies=frozenset({"pong"}),
)

BINANCE = VenueDescriptor(
    exchange=Exchange.BINANCE,
    url=BINANCE_FUTURES_URL,
    build_subscribe=binance_subscribe,
    keepalive=KeepAliveStyle.PROTOCOL_PING,
    ping_interval=30.0,
)

HUOBI = VenueDescriptor(
    exchange=Exchange.HUOBI,
    url=HUOBI_NOTIFICATION_URL,
    build_subscribe=huobi_subscribe,
    keepalive=KeepAliveStyle.SERVER_PING,
    decode=decode_gzip,
    server_ping_reply=huobi_pong,
    uses_instrument_list=True,
)

VENUES: dict[Exchange, VenueDescriptor] = {
    venue.exchange: venue for venue in (OKX, BINANCE, HUOBI)
}


def encode_control(message: ControlMessage) -> str:
    return message if isinstance(message, str) else json.dumps(message)
