"""Venue wire messages -> LiquidationEvent.

Every function takes an already-decoded JSON message and returns the list of
liquidation events it carries. An empty list means the message is not a
liquidation message (subscribe acks, heartbeats, unexpected shapes); callers
drop it without treating it as an error.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from liquidation_relay.core.types import Exchange, Side
from liquidation_relay.data.models import LiquidationEvent

logger = logging.getLogger(__name__)

Normalizer = Callable[[Any], list[LiquidationEvent]]

# Field priority lists: fill price first, book/order price as fallback.
OKX_PRICE_FIELDS = ("fillPx", "price", "px", "bkPx")
OKX_QUANTITY_FIELDS = ("sz", "qty")
BINANCE_PRICE_FIELDS = ("ap", "p")
BINANCE_QUANTITY_FIELDS = ("z", "l", "q")
HUOBI_PRICE_FIELDS = ("price",)
HUOBI_QUANTITY_FIELDS = ("amount", "volume")

# Order-side and position-side vocabulary. A liquidated long is closed by a
# sell order, a liquidated short by a buy order.
_SIDE_VOCABULARY = {
    "buy": Side.BUY,
    "sell": Side.SELL,
    "short": Side.BUY,
    "long": Side.SELL,
}


def canonical_side(value: Any) -> Side | None:
    """Map a venue side literal ("buy", "SELL", "Long", ...) to Side."""
    if not isinstance(value, str):
        return None
    return _SIDE_VOCABULARY.get(value.strip().lower())


def to_decimal(value: Any) -> Decimal | None:
    """Parse a non-negative finite number, or None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number < 0:
        return None
    return number


def first_decimal(source: Mapping[str, Any], fields: Iterable[str]) -> Decimal | None:
    """Return the first usable number among ``fields`` in priority order."""
    for name in fields:
        number = to_decimal(source.get(name))
        # Zero price/size means "not reported" on every supported venue.
        if number is not None and number > 0:
            return number
    return None


def to_timestamp(value: Any) -> datetime | None:
    """Parse an epoch-milliseconds value."""
    millis = to_decimal(value)
    if millis is None or millis == 0:
        return None
    try:
        return datetime.fromtimestamp(float(millis) / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def _build_event(
    exchange: Exchange,
    instrument: Any,
    side_value: Any,
    price: Decimal | None,
    quantity: Decimal | None,
    event_time: Any,
) -> LiquidationEvent | None:
    side = canonical_side(side_value)
    if not isinstance(instrument, str) or not instrument or side is None:
        return None
    received_at = datetime.now()
    return LiquidationEvent(
        exchange=exchange,
        instrument=instrument.upper(),
        side=side,
        price=price,
        quantity=quantity,
        observed_at=to_timestamp(event_time) or received_at,
        received_at=received_at,
    )


def normalize_okx(message: Any) -> list[LiquidationEvent]:
    """Normalize an OKX ``liquidation-orders`` push.

    Entries either carry a ``details`` list (one item per liquidation) or the
    liquidation fields directly.
    """
    if not isinstance(message, dict) or "event" in message:
        return []
    entries = message.get("data")
    if not isinstance(entries, list):
        return []

    events: list[LiquidationEvent] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        details = entry.get("details")
        if not isinstance(details, list):
            details = [entry]
        for detail in details:
            if not isinstance(detail, dict):
                continue
            event = _build_event(
                Exchange.OKX,
                entry.get("instId") or detail.get("instId"),
                detail.get("side") or detail.get("posSide"),
                first_decimal(detail, OKX_PRICE_FIELDS),
                first_decimal(detail, OKX_QUANTITY_FIELDS),
                detail.get("ts") or entry.get("ts"),
            )
            if event is not None:
                events.append(event)
    return events


def normalize_binance(message: Any) -> list[LiquidationEvent]:
    """Normalize a Binance ``forceOrder`` push (raw or combined stream)."""
    if not isinstance(message, dict):
        return []
    if isinstance(message.get("data"), dict):
        message = message["data"]
    if message.get("e") != "forceOrder":
        return []
    order = message.get("o")
    if not isinstance(order, dict):
        return []
    event = _build_event(
        Exchange.BINANCE,
        order.get("s"),
        order.get("S"),
        first_decimal(order, BINANCE_PRICE_FIELDS),
        first_decimal(order, BINANCE_QUANTITY_FIELDS),
        order.get("T") or message.get("E"),
    )
    return [event] if event is not None else []


def normalize_huobi(message: Any) -> list[LiquidationEvent]:
    """Normalize a Huobi ``public.<contract>.liquidation_orders`` notify."""
    if not isinstance(message, dict) or message.get("op") != "notify":
        return []
    topic = message.get("topic")
    if not isinstance(topic, str) or not topic.endswith(".liquidation_orders"):
        return []
    entries = message.get("data")
    if not isinstance(entries, list):
        return []

    events: list[LiquidationEvent] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        event = _build_event(
            Exchange.HUOBI,
            entry.get("contract_code"),
            entry.get("direction"),
            first_decimal(entry, HUOBI_PRICE_FIELDS),
            first_decimal(entry, HUOBI_QUANTITY_FIELDS),
            entry.get("created_at") or message.get("ts"),
        )
        if event is not None:
            events.append(event)
    return events


NORMALIZERS: dict[Exchange, Normalizer] = {
    Exchange.OKX: normalize_okx,
    Exchange.BINANCE: normalize_binance,
    Exchange.HUOBI: normalize_huobi,
}


def normalize(exchange: Exchange, message: Any) -> list[LiquidationEvent]:
    """Dispatch to the venue normalizer, never raising on bad input."""
    try:
        return NORMALIZERS[exchange](message)
    except Exception as e:
        logger.debug(f"[{exchange.value}] dropped unparseable message: {e}")
        return []
