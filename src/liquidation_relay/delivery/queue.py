"""Rate-governed outbound delivery queue with batching and retry."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from threading import RLock
from typing import Protocol

from liquidation_relay.core.backoff import exponential_backoff
from liquidation_relay.data.models import OutboundMessage
from liquidation_relay.delivery.rate_limit import RateLimiter
from liquidation_relay.notifications.telegram import DeliveryResult

logger = logging.getLogger(__name__)

# Bot API hard limit for one text message.
DEFAULT_MAX_CHARS = 4000
TRUNCATION_MARKER = "… [truncated]"
BATCH_SEPARATOR = "\n"


class Transport(Protocol):
    """Chat transport contract used by the queue."""

    @property
    def enabled(self) -> bool: ...

    def send(self, text: str) -> Awaitable[DeliveryResult]: ...


@dataclass
class Payload:
    """One outbound send: a single message or a concatenated batch."""

    text: str
    message_count: int
    attempts: int = 0
    not_before: float = 0.0


def truncate(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` and mark the cut visibly."""
    if len(text) <= max_chars:
        return text
    keep = max(max_chars - len(TRUNCATION_MARKER), 0)
    return (text[:keep] + TRUNCATION_MARKER)[:max_chars]


def batch_header(messages: list[OutboundMessage]) -> str:
    first = messages[0].enqueued_at
    last = messages[-1].enqueued_at
    return f"📦 Batch of {len(messages)} messages ({first:%H:%M:%S}-{last:%H:%M:%S})"


def render_batch(messages: list[OutboundMessage]) -> str:
    if len(messages) == 1:
        return messages[0].text
    lines = [batch_header(messages), *(message.text for message in messages)]
    return BATCH_SEPARATOR.join(lines)


class DeliveryQueue:
    """FIFO of outbound chat messages drained under a rate policy.

    Features:
    - ``enqueue`` is a non-blocking append, safe from any producer
    - ``drain`` sends as many payloads as the rate limiter allows
    - Consecutive messages are batched up to ``max_chars``
    - Throttled or failed payloads are retried head-of-line with backoff,
      then dropped after ``max_retries`` retries
    """

    def __init__(
        self,
        transport: Transport,
        rate_limiter: RateLimiter,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_batch_messages: int = 20,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_exponent: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize delivery queue.

        Args:
            transport: Chat transport (e.g. TelegramTransport)
            rate_limiter: Token bucket or fixed-interval limiter
            max_chars: Hard ceiling on payload length
            max_batch_messages: Max messages per payload (1 disables batching)
            max_retries: Retries per payload before it is dropped
            retry_base_delay: First backoff delay when no retry hint is given
            retry_max_exponent: Cap on the backoff exponent
            clock: Monotonic clock (injectable for tests)
        """
        if max_chars <= len(TRUNCATION_MARKER):
            raise ValueError("max_chars is too small to hold a truncation marker")
        self._transport = transport
        self._limiter = rate_limiter
        self._max_chars = max_chars
        self._max_batch = max(max_batch_messages, 1)
        self._max_retries = max(max_retries, 0)
        self._retry_base_delay = retry_base_delay
        self._retry_max_exponent = retry_max_exponent
        self._clock = clock
        self._messages: deque[OutboundMessage] = deque()
        self._retry: Payload | None = None
        self._lock = RLock()
        self._drain_lock = asyncio.Lock()
        self._sent_payloads = 0
        self._dropped_payloads = 0

    def enqueue(self, text: str) -> None:
        """Append a message. Never blocks, never fails."""
        with self._lock:
            self._messages.append(OutboundMessage(text=text))

    @property
    def depth(self) -> int:
        """Messages waiting (excluding a payload pending retry)."""
        with self._lock:
            return len(self._messages)

    @property
    def pending_retry(self) -> Payload | None:
        with self._lock:
            return self._retry

    @property
    def sent_payloads(self) -> int:
        return self._sent_payloads

    @property
    def dropped_payloads(self) -> int:
        return self._dropped_payloads

    def snapshot(self) -> list[str]:
        """Queued message texts in delivery order."""
        with self._lock:
            return [message.text for message in self._messages]

    def _next_payload(self) -> Payload | None:
        """Pick the head payload if it is due and a permit is available."""
        with self._lock:
            if self._retry is not None:
                if self._clock() < self._retry.not_before:
                    return None
                if not self._limiter.try_acquire():
                    return None
                payload, self._retry = self._retry, None
                return payload

            if not self._messages:
                return None
            if not self._limiter.try_acquire():
                return None
            return self._take_batch()

    def _take_batch(self) -> Payload:
        first = self._messages.popleft()
        if len(first.text) > self._max_chars:
            return Payload(text=truncate(first.text, self._max_chars), message_count=1)

        batch = [first]
        while self._messages and len(batch) < self._max_batch:
            candidate = [*batch, self._messages[0]]
            if len(render_batch(candidate)) > self._max_chars:
                break
            batch.append(self._messages.popleft())
        return Payload(text=render_batch(batch), message_count=len(batch))

    def _schedule_retry(self, payload: Payload, result: DeliveryResult) -> None:
        payload.attempts += 1
        if payload.attempts > self._max_retries:
            self._dropped_payloads += 1
            logger.error(
                f"Dropping payload of {payload.message_count} message(s) after "
                f"{self._max_retries} retries: {result.error_code or ''} {result.description}"
            )
            return

        if result.retry_after is not None and result.retry_after >= 0:
            delay = result.retry_after
        else:
            delay = exponential_backoff(
                payload.attempts - 1, self._retry_base_delay, self._retry_max_exponent
            )
        payload.not_before = self._clock() + delay
        with self._lock:
            self._retry = payload

        if result.rate_limited:
            logger.warning(f"Delivery throttled, retry {payload.attempts} in {delay:.1f}s")
        else:
            logger.warning(
                f"Delivery failed ({result.description or result.error_code}), "
                f"retry {payload.attempts} in {delay:.1f}s"
            )

    async def drain(self) -> int:
        """Send what the current rate budget allows.

        Returns:
            Number of payloads delivered in this cycle
        """
        async with self._drain_lock:
            with self._lock:
                self._limiter.start_cycle()

            delivered = 0
            while True:
                payload = self._next_payload()
                if payload is None:
                    break

                result = await self._transport.send(payload.text)
                if result.ok:
                    delivered += 1
                    self._sent_payloads += 1
                    continue

                # Head-of-line: nothing behind the failed payload goes out first.
                self._schedule_retry(payload, result)
                break

            return delivered

    async def run(self, interval: float) -> None:
        """Drain on a fixed schedule until cancelled."""
        while True:
            try:
                await self.drain()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Delivery drain error: {e}")
            await asyncio.sleep(interval)
