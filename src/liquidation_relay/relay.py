"""Relay orchestrator - wires venue streams to statistics and delivery."""

import asyncio
import logging
from collections.abc import Coroutine
from datetime import datetime
from typing import Any

from liquidation_relay.config import Config
from liquidation_relay.core.types import Exchange
from liquidation_relay.data.formatting import (
    format_connected,
    format_disconnected,
    format_event,
    format_horizon,
    format_startup,
    format_summary,
)
from liquidation_relay.data.models import LiquidationEvent
from liquidation_relay.data.pairs import HuobiPairSource
from liquidation_relay.delivery.queue import DeliveryQueue, Transport
from liquidation_relay.delivery.rate_limit import create_rate_limiter
from liquidation_relay.errors import PairListError
from liquidation_relay.notifications.telegram import TelegramTransport
from liquidation_relay.stats.aggregator import StatsAggregator
from liquidation_relay.streams.connection import StreamConnection
from liquidation_relay.streams.venues import VENUES

logger = logging.getLogger(__name__)


class LiquidationRelay:
    """Liquidation relay.

    Owns one StreamConnection per venue, the shared StatsAggregator and the
    DeliveryQueue, and every timer that drives them:
    - delivery drain on a fixed interval
    - stats summaries per horizon group (short and long cadence)
    - Huobi pair-list refresh

    Events from different venues interleave in arrival order; no ordering
    across venues is assumed.
    """

    def __init__(
        self,
        config: Config,
        transport: Transport | None = None,
        pair_source: HuobiPairSource | None = None,
        connections: dict[Exchange, StreamConnection] | None = None,
    ) -> None:
        """Initialize relay.

        Args:
            config: Application configuration
            transport: Chat transport (default: TelegramTransport from config)
            pair_source: Huobi contract list source
            connections: Prebuilt connections (default: one per configured venue)
        """
        self._config = config
        if transport is None:
            transport = TelegramTransport(
                bot_token=config.telegram.bot_token,
                chat_id=config.telegram.chat_id,
                api_url=config.telegram.api_url,
            )
        self._transport = transport
        self._delivery_enabled = transport.enabled

        delivery = config.delivery
        self.queue = DeliveryQueue(
            transport=transport,
            rate_limiter=create_rate_limiter(
                delivery.rate_policy, delivery.bucket_capacity, delivery.refill_rate
            ),
            max_chars=delivery.max_message_chars,
            max_batch_messages=delivery.batch_size,
            max_retries=delivery.max_retries,
            retry_base_delay=delivery.retry_base_delay,
        )
        self.stats = StatsAggregator(config.stats.horizons_seconds)
        self._pair_source = pair_source or HuobiPairSource(
            quote_suffix=config.streams.huobi_quote_suffix
        )

        if connections is None:
            connections = {
                exchange: StreamConnection(
                    VENUES[exchange],
                    base_delay=config.streams.reconnect_base_delay,
                    max_exponent=config.streams.reconnect_max_exponent,
                )
                for exchange in config.streams.exchanges
            }
        self.connections = connections
        for connection in self.connections.values():
            connection.on_connected(self._handle_connected)
            connection.on_event(self._handle_event)
            connection.on_disconnected(self._handle_disconnected)

        self._tasks: list[asyncio.Task] = []
        self._started_at: datetime | None = None

    @property
    def delivery_enabled(self) -> bool:
        return self._delivery_enabled

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    def publish(self, text: str) -> None:
        """Queue a chat message; dropped when delivery is disabled."""
        if not self._delivery_enabled:
            logger.debug(f"Delivery disabled, not queued: {text}")
            return
        self.queue.enqueue(text)

    def _handle_event(self, event: LiquidationEvent) -> None:
        self.stats.record_event(event)
        text = format_event(event)
        logger.info(text)
        self.publish(text)

    def _handle_connected(self, exchange: Exchange) -> None:
        self.publish(format_connected(exchange))

    def _handle_disconnected(self, exchange: Exchange, reason: str, retry_in: float) -> None:
        self.publish(format_disconnected(exchange, reason, retry_in))

    def emit_summaries(self, horizons_seconds: list[float]) -> list[str]:
        """Queue a summary for each non-empty horizon.

        Returns:
            The summary texts that were produced
        """
        texts = []
        for horizon in horizons_seconds:
            summary = self.stats.summarize(horizon)
            if summary is None:
                logger.debug(f"No liquidations in the last {format_horizon(horizon)}")
                continue
            text = format_summary(summary)
            logger.info(text)
            self.publish(text)
            texts.append(text)
        return texts

    async def refresh_pairs(self) -> bool:
        """Fetch the Huobi contract list and resubscribe if it changed.

        Returns:
            True if a list was fetched and applied
        """
        connection = self.connections.get(Exchange.HUOBI)
        if connection is None:
            return False
        try:
            instruments = await self._pair_source.fetch_instruments()
        except PairListError as e:
            logger.warning(f"Huobi pair refresh failed, keeping {len(connection.instruments)}: {e}")
            return False
        if not instruments:
            logger.warning("Huobi pair refresh returned no contracts, keeping current list")
            return False
        await connection.update_instruments(instruments)
        return True

    async def _stats_loop(self, interval: float, horizons_seconds: list[float]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.emit_summaries(horizons_seconds)
            except Exception as e:
                logger.error(f"Stats emission error: {e}")

    async def _pair_refresh_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._refresh_pairs_guarded()

    async def _refresh_pairs_guarded(self) -> None:
        try:
            await self.refresh_pairs()
        except Exception as e:
            logger.error(f"Huobi pair refresh error: {e}")

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._on_task_done)
        self._tasks.append(task)

    @staticmethod
    def _on_task_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Task {task.get_name()} died: {error!r}")

    async def start(self) -> None:
        """Start streams, delivery and timers."""
        self._started_at = datetime.now()
        exchanges = list(self.connections)

        if self._delivery_enabled:
            self.publish(format_startup(exchanges))
            self._spawn(self.queue.run(self._config.delivery.drain_interval), "delivery")
        else:
            logger.error("Telegram credentials missing; delivery disabled, streams still running")

        if Exchange.HUOBI in self.connections:
            await self._refresh_pairs_guarded()
            self._spawn(
                self._pair_refresh_loop(self._config.streams.huobi_pair_refresh_interval),
                "huobi-pairs",
            )

        for exchange, connection in self.connections.items():
            self._spawn(connection.run(), f"stream-{exchange.value}")

        stats = self._config.stats
        for interval, minutes in (
            (stats.short_interval, stats.short_horizons),
            (stats.long_interval, stats.long_horizons),
        ):
            if minutes:
                self._spawn(
                    self._stats_loop(interval, [m * 60.0 for m in minutes]),
                    f"stats-{int(interval)}s",
                )

        logger.info(f"Relay started: {', '.join(e.value for e in exchanges)}")

    async def stop(self) -> None:
        """Close streams and timers, then flush what the rate budget allows."""
        for connection in self.connections.values():
            await connection.close()

        for task in self._tasks:
            task.cancel()
        # Failures were already logged by _on_task_done
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self._delivery_enabled:
            try:
                await asyncio.wait_for(self.queue.drain(), timeout=5)
            except Exception as e:
                logger.warning(f"Final delivery flush incomplete: {e}")
        logger.info("Relay stopped")

    def health_snapshot(self) -> dict[str, Any]:
        """Read-only status for the health endpoint."""
        pending = self.queue.pending_retry
        return {
            "delivery_enabled": self._delivery_enabled,
            "queue_depth": self.queue.depth,
            "pending_retry": pending is not None,
            "sent_payloads": self.queue.sent_payloads,
            "dropped_payloads": self.queue.dropped_payloads,
            "connections": {
                exchange.value: connection.state.to_dict()
                for exchange, connection in self.connections.items()
            },
            "recent_events": {
                format_horizon(horizon): count
                for horizon, count in sorted(self.stats.recent_counts().items())
            },
        }
