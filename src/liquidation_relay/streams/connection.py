"""Generic liquidation stream connection with keep-alive and reconnect."""

import asyncio
import contextlib
import json
import logging
import zlib
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from liquidation_relay.core.backoff import exponential_backoff
from liquidation_relay.core.types import ConnectionStatus, Exchange, KeepAliveStyle
from liquidation_relay.data.models import ConnectionState, LiquidationEvent
from liquidation_relay.data.normalizer import normalize
from liquidation_relay.streams.venues import Frame, VenueDescriptor, encode_control

logger = logging.getLogger(__name__)

ConnectFactory = Callable[..., Any]
Sleeper = Callable[[float], Awaitable[None]]


class StreamConnection:
    """One long-lived WebSocket to a venue's liquidation feed.

    Features:
    - Venue-specific subscribe handshake, keep-alive and frame decoding
      supplied by a VenueDescriptor
    - Automatic reconnection with capped exponential backoff
    - Connection state tracking (DISCONNECTED -> CONNECTING -> CONNECTED)
    - Callback-based event handling

    Frames of one connection are handled strictly in arrival order.
    """

    # Reconnection settings
    BASE_RECONNECT_DELAY = 1.0  # Initial delay in seconds
    MAX_BACKOFF_EXPONENT = 5  # Max delay = base * 2**5

    def __init__(
        self,
        venue: VenueDescriptor,
        instruments: list[str] | None = None,
        base_delay: float = BASE_RECONNECT_DELAY,
        max_exponent: int = MAX_BACKOFF_EXPONENT,
        connect: ConnectFactory = websockets.connect,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize stream connection.

        Args:
            venue: Venue descriptor (URL, subscribe builder, keep-alive style)
            instruments: Instruments to subscribe (venues with pair lists)
            base_delay: Reconnect delay after the first failure in seconds
            max_exponent: Cap on the backoff exponent
            connect: WebSocket connect factory (injectable for tests)
            sleep: Backoff sleeper (injectable for tests)
        """
        self.venue = venue
        self.state = ConnectionState(exchange=venue.exchange)
        self._instruments = list(instruments or [])
        self._base_delay = base_delay
        self._max_exponent = max_exponent
        self._connect = connect
        self._sleep = sleep
        self._ws: Any = None
        self._keepalive_task: asyncio.Task | None = None
        self._running = False
        self._restart_requested = False
        self._callbacks: dict[str, list[Callable[..., None]]] = {
            "connected": [],
            "event": [],
            "disconnected": [],
        }

    @property
    def exchange(self) -> Exchange:
        return self.venue.exchange

    @property
    def instruments(self) -> list[str]:
        return list(self._instruments)

    @property
    def is_connected(self) -> bool:
        return self.state.status == ConnectionStatus.CONNECTED

    def on_connected(self, callback: Callable[[Exchange], None]) -> None:
        """Register connected callback.

        Args:
            callback: Function to call with the venue once the socket is open
        """
        self._callbacks["connected"].append(callback)

    def on_event(self, callback: Callable[[LiquidationEvent], None]) -> None:
        """Register liquidation callback.

        Args:
            callback: Function to call with each normalized LiquidationEvent
        """
        self._callbacks["event"].append(callback)

    def on_disconnected(self, callback: Callable[[Exchange, str, float], None]) -> None:
        """Register disconnected callback.

        Args:
            callback: Function to call with (venue, reason, reconnect delay)
        """
        self._callbacks["disconnected"].append(callback)

    def _notify(self, name: str, *args: Any) -> None:
        for callback in self._callbacks[name]:
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"[{self.exchange.value}] Error in {name} callback: {e}")

    def backoff_delay(self) -> float:
        """Delay before the next reconnect, from the consecutive failure count."""
        return exponential_backoff(
            self.state.reconnect_attempts, self._base_delay, self._max_exponent
        )

    async def run(self) -> None:
        """Keep the connection running with automatic reconnection."""
        self._running = True
        name = self.exchange.value

        try:
            await self._run_loop(name)
        finally:
            self.state.status = ConnectionStatus.DISCONNECTED

    async def _run_loop(self, name: str) -> None:
        while self._running:
            self.state.mark_connecting()
            reason = "closed by server"
            try:
                async with self._connect(self.venue.url, ping_interval=None) as ws:
                    self._ws = ws
                    self.state.mark_connected()
                    logger.info(f"[{name}] WebSocket connection established: {self.venue.url}")
                    self._notify("connected", self.exchange)

                    await self._subscribe(ws)
                    self._start_keepalive(ws)

                    async for raw in ws:
                        await self._handle_frame(ws, raw)
            except ConnectionClosed as e:
                reason = f"connection closed: {e}"
            except asyncio.CancelledError:
                self._running = False
                raise
            except Exception as e:
                reason = str(e) or type(e).__name__
            finally:
                await self._stop_keepalive()
                self._ws = None

            if not self._running:
                break

            if self._restart_requested:
                self._restart_requested = False
                self.state.status = ConnectionStatus.DISCONNECTED
                logger.info(f"[{name}] Reopening with {len(self._instruments)} instruments")
                continue

            delay = self.backoff_delay()
            self.state.mark_disconnected(reason)
            logger.warning(
                f"[{name}] WebSocket disconnected ({reason}). Reconnecting in {delay:.1f}s "
                f"(attempt {self.state.reconnect_attempts})..."
            )
            self._notify("disconnected", self.exchange, reason, delay)
            await self._sleep(delay)

    async def _subscribe(self, ws: Any) -> None:
        for message in self.venue.build_subscribe(self._instruments):
            await ws.send(encode_control(message))
        logger.info(f"[{self.exchange.value}] Subscribed to liquidation feed")

    def _start_keepalive(self, ws: Any) -> None:
        if self.venue.keepalive == KeepAliveStyle.SERVER_PING:
            return
        self._keepalive_task = asyncio.create_task(self._keepalive(ws))

    async def _stop_keepalive(self) -> None:
        task, self._keepalive_task = self._keepalive_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            try:
                await task
            except Exception as e:
                logger.warning(f"[{self.exchange.value}] Keep-alive task failed: {e}")

    async def _keepalive(self, ws: Any) -> None:
        """Send pings while CONNECTED."""
        while self.is_connected:
            await asyncio.sleep(self.venue.ping_interval)
            try:
                if self.venue.keepalive == KeepAliveStyle.PROTOCOL_PING:
                    await ws.ping()
                else:
                    await ws.send(self.venue.ping_message)
            except ConnectionClosed:
                return
            except Exception as e:
                logger.warning(f"[{self.exchange.value}] Keep-alive ping failed: {e}")
                # Closing ends the reader loop, which schedules the reconnect
                with contextlib.suppress(Exception):
                    await ws.close()
                return
            self.state.last_ping_sent_at = datetime.now()

    async def _handle_frame(self, ws: Any, raw: Frame) -> None:
        """Decode one frame; malformed frames are logged and dropped."""
        name = self.exchange.value
        try:
            text = self.venue.decode(raw)
        except (OSError, EOFError, UnicodeDecodeError, zlib.error) as e:
            logger.debug(f"[{name}] Failed to decode frame: {e}")
            return

        if self.venue.is_keepalive_reply(text):
            return

        try:
            message = json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug(f"[{name}] Failed to parse message: {e}")
            return

        reply = self.venue.server_ping_reply(message)
        if reply is not None:
            await ws.send(json.dumps(reply))
            self.state.last_ping_sent_at = datetime.now()
            return

        events = normalize(self.exchange, message)
        if not events:
            logger.debug(f"[{name}] Ignored non-liquidation message: {text[:200]}")
            return

        for event in events:
            self.state.events_received += 1
            self._notify("event", event)

    async def update_instruments(self, instruments: list[str]) -> None:
        """Replace the subscription set by reopening the connection."""
        if sorted(instruments) == sorted(self._instruments):
            return
        self._instruments = list(instruments)
        if self._ws is not None:
            self._restart_requested = True
            await self._ws.close()

    async def close(self) -> None:
        """Stop reconnecting and close the socket."""
        self._running = False
        await self._stop_keepalive()
        if self._ws is not None:
            try:
                await self._ws.close()
                logger.info(f"[{self.exchange.value}] WebSocket connection closed")
            except Exception as e:
                logger.error(f"[{self.exchange.value}] Error closing WebSocket: {e}")
