"""Request pacing and exponential-backoff retries shared by every outbound call."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Optional, TypeVar

from business_prospector.core.config import RateLimitingConfig
from business_prospector.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class QueueEntry:
    future: "asyncio.Future[None]"
    enqueued_at: float


@dataclass(frozen=True)
class QueueStatus:
    queue_length: int
    processing: bool
    requests_per_second: float


async def _delay(ms: float) -> None:
    await asyncio.sleep(ms / 1000)


class ExponentialBackoffRateLimiter:
    """FIFO pacing queue plus a retry wrapper with capped exponential delays.

    Callers queue up in :meth:`wait_for_next_request` and are released one at a
    time, ``1000 / requests_per_second`` ms apart, by a single drain task that
    starts on the first enqueue and exits once the queue is empty.
    """

    def __init__(self, config: Optional[RateLimitingConfig] = None) -> None:
        config = config or RateLimitingConfig()
        self.requests_per_second = config.requests_per_second
        self.max_retries = config.max_retries
        self.base_delay_ms = config.base_delay_ms
        self.max_delay_ms = config.max_delay_ms
        self.backoff_multiplier = config.backoff_multiplier

        self._queue: Deque[QueueEntry] = deque()
        self._processing = False
        self._drain_task: Optional[asyncio.Task] = None

    async def wait_for_next_request(self) -> None:
        loop = asyncio.get_running_loop()
        entry = QueueEntry(future=loop.create_future(), enqueued_at=time.monotonic())
        self._queue.append(entry)

        if not self._processing:
            self._processing = True
            self._drain_task = loop.create_task(self._process_queue())

        await entry.future

    async def _process_queue(self) -> None:
        interval_ms = 1000 / self.requests_per_second
        try:
            while self._queue:
                entry = self._queue.popleft()
                if not entry.future.done():
                    entry.future.set_result(None)
                    logger.debug("Released request queued %.3fs ago", time.monotonic() - entry.enqueued_at)
                await _delay(interval_ms)
        finally:
            self._processing = False
            self._drain_task = None

    def backoff_delay_ms(self, attempt: int) -> float:
        return min(self.base_delay_ms * (self.backoff_multiplier ** attempt), self.max_delay_ms)

    async def retry_with_backoff(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` and retry transient failures up to ``max_retries`` times.

        The last exception is re-raised as-is once retries are exhausted or the
        failure is not retryable.
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if attempt >= self.max_retries or not is_retryable(exc):
                    raise
                delay_ms = self.backoff_delay_ms(attempt)
                logger.warning(
                    "Request failed (attempt %s/%s), retrying in %.0fms: %s",
                    attempt + 1,
                    self.max_retries + 1,
                    delay_ms,
                    exc,
                )
                await _delay(delay_ms)
                attempt += 1

    def get_queue_status(self) -> QueueStatus:
        return QueueStatus(
            queue_length=len(self._queue),
            processing=self._processing,
            requests_per_second=self.requests_per_second,
        )
