"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from liquidation_relay.core.types import Exchange, Side
from liquidation_relay.data.models import LiquidationEvent
from liquidation_relay.notifications.telegram import DeliveryResult


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Records every send; replies from a script, then succeeds."""

    def __init__(
        self,
        results: list[DeliveryResult] | None = None,
        clock: FakeClock | None = None,
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self._results = list(results or [])
        self._clock = clock
        self.sent: list[str] = []
        self.sent_at: list[float] = []
        self.delivered: list[str] = []

    async def send(self, text: str) -> DeliveryResult:
        self.sent.append(text)
        if self._clock is not None:
            self.sent_at.append(self._clock())
        result = self._results.pop(0) if self._results else DeliveryResult(ok=True)
        if result.ok:
            self.delivered.append(text)
        return result


class FakeWebSocket:
    """In-memory WebSocket: frames are fed by the test, close ends iteration."""

    _CLOSED = object()

    def __init__(self, frames: list | None = None, close_after_frames: bool = True) -> None:
        self.sent: list[str] = []
        self.pings = 0
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()
        for frame in frames or []:
            self._inbox.put_nowait(frame)
        if close_after_frames:
            self._inbox.put_nowait(self._CLOSED)

    async def __aenter__(self) -> "FakeWebSocket":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.closed = True

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self):
        frame = await self._inbox.get()
        if frame is self._CLOSED:
            raise StopAsyncIteration
        return frame

    def feed(self, frame) -> None:
        self._inbox.put_nowait(frame)

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def ping(self) -> None:
        self.pings += 1

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(self._CLOSED)


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_event() -> Callable[..., LiquidationEvent]:
    """Factory for normalized events received ``age`` seconds ago."""

    def _make(
        side: Side = Side.SELL,
        price: str | None = "65000",
        quantity: str | None = "2",
        exchange: Exchange = Exchange.OKX,
        instrument: str = "BTC-USDT",
        received_at: datetime | None = None,
    ) -> LiquidationEvent:
        received = received_at or datetime.now()
        return LiquidationEvent(
            exchange=exchange,
            instrument=instrument,
            side=side,
            price=Decimal(price) if price is not None else None,
            quantity=Decimal(quantity) if quantity is not None else None,
            observed_at=received - timedelta(milliseconds=50),
            received_at=received,
        )

    return _make
