"""Human-readable rendering of events, summaries and connection notices."""

from decimal import Decimal
from typing import TYPE_CHECKING

from liquidation_relay.core.types import Exchange, Side
from liquidation_relay.data.models import LiquidationEvent

if TYPE_CHECKING:
    from liquidation_relay.stats.aggregator import WindowSummary

UNKNOWN_AMOUNT = "$–"

# SELL closes a long position, BUY closes a short position.
SIDE_WORDING: dict[Side, str] = {
    Side.SELL: "Long",
    Side.BUY: "Short",
}

SUCCESS_MARKER = "🟢"
DANGER_MARKER = "🔴"

SIDE_MARKER: dict[Side, str] = {
    Side.SELL: DANGER_MARKER,
    Side.BUY: SUCCESS_MARKER,
}


def side_wording(side: Side) -> str:
    return SIDE_WORDING[side]


def side_marker(side: Side) -> str:
    return SIDE_MARKER[side]


def format_usd(amount: Decimal | None, places: int | None = 2) -> str:
    """Format a dollar amount, rendering unknown values as ``$–``."""
    if amount is None:
        return UNKNOWN_AMOUNT
    if places is None:
        return f"${amount.normalize():,f}"
    return f"${amount:,.{places}f}"


def format_event(event: LiquidationEvent) -> str:
    """Render one liquidation as a single chat line.

    Example: ``🔴 #BTC-USDT Liquidated Long: $65,000.00 at $65,000 | OKX``
    """
    return (
        f"{side_marker(event.side)} #{event.instrument} "
        f"Liquidated {side_wording(event.side)}: {format_usd(event.notional_usd)} "
        f"at {format_usd(event.price, places=None)} | {event.exchange.label}"
    )


def format_connected(exchange: Exchange) -> str:
    return f"{SUCCESS_MARKER} {exchange.label} stream connected"


def format_disconnected(exchange: Exchange, reason: str, retry_in: float) -> str:
    reason_text = f" ({reason})" if reason else ""
    return (
        f"{DANGER_MARKER} {exchange.label} stream disconnected{reason_text}. "
        f"Reconnecting in {retry_in:g}s..."
    )


def format_startup(exchanges: list[Exchange]) -> str:
    venues = ", ".join(exchange.label for exchange in exchanges)
    return f"🚀 Liquidation relay started. Watching {venues}..."


def format_horizon(seconds: float) -> str:
    """``300`` -> ``5m``, ``3600`` -> ``1h``."""
    total = int(seconds)
    if total % 3600 == 0:
        return f"{total // 3600}h"
    if total % 60 == 0:
        return f"{total // 60}m"
    return f"{total}s"


def format_summary(summary: "WindowSummary") -> str:
    """Render a window summary.

    Example: ``📊 Liquidations last 5m: 4 total | 🟢 Short 3 (75.0%) | 🔴 Long 1 (25.0%)``
    """
    return (
        f"📊 Liquidations last {format_horizon(summary.horizon_seconds)}: "
        f"{summary.total} total | "
        f"{side_marker(Side.BUY)} {side_wording(Side.BUY)} "
        f"{summary.buy_count} ({summary.buy_percent:.1f}%) | "
        f"{side_marker(Side.SELL)} {side_wording(Side.SELL)} "
        f"{summary.sell_count} ({summary.sell_percent:.1f}%)"
    )
