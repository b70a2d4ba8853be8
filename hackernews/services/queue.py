"""Throttled, bounded-concurrency queue for outbound upstream requests."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional

from hackernews.connectors.http import PageRequest
from hackernews.utils.logging import get_logger

WorkerFn = Callable[[str, Optional[PageRequest]], Awaitable[Any]]
ClockFn = Callable[[], float]
SleepFn = Callable[[float], Awaitable[Any]]

logger = get_logger(__name__)


class RateLimitedQueue:
    """Serializes upstream fetches against two limits at once.

    - ``concurrency``: units executing at the same time
    - ``max_per_window``: units started within any ``window_seconds`` span

    Waiting units are released in submission order. The queue never retries;
    a failing worker call rejects only its own unit.
    """

    def __init__(
        self,
        worker: WorkerFn,
        *,
        concurrency: int = 999,
        max_per_window: int = 1000,
        window_seconds: float = 1.0,
        clock: ClockFn = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ):
        if concurrency < 1 or max_per_window < 1:
            raise ValueError("queue limits must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._worker = worker
        self.concurrency = concurrency
        self.max_per_window = max_per_window
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._active = 0
        self._starts: Deque[float] = deque()
        self._waiters: Deque[asyncio.Future] = deque()
        self._pacer: Optional[asyncio.Future] = None

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def push(self, url: str, page: Optional[PageRequest] = None) -> Any:
        """Queue one unit and return the worker's decoded result."""
        await self._acquire()
        try:
            return await self._worker(url, page)
        finally:
            self._active -= 1
            self._release_waiters()

    async def _acquire(self) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self._release_waiters()
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # slot was granted just before cancellation
                self._active -= 1
                self._release_waiters()
            raise

    def _release_waiters(self) -> None:
        while self._waiters and self._active < self.concurrency:
            if self._waiters[0].done():
                self._waiters.popleft()
                continue
            delay = self._window_delay()
            if delay > 0:
                self._schedule_pacer(delay)
                return
            waiter = self._waiters.popleft()
            self._active += 1
            self._starts.append(self._clock())
            waiter.set_result(None)

    def _window_delay(self) -> float:
        now = self._clock()
        while self._starts and now - self._starts[0] >= self.window_seconds:
            self._starts.popleft()
        if len(self._starts) < self.max_per_window:
            return 0.0
        return self.window_seconds - (now - self._starts[0])

    def _schedule_pacer(self, delay: float) -> None:
        if self._pacer is not None and not self._pacer.done():
            return
        logger.debug("queue.paced", extra={"delay": delay, "waiting": self.waiting})
        self._pacer = asyncio.ensure_future(self._pace(delay))

    async def _pace(self, delay: float) -> None:
        await self._sleep(delay)
        self._pacer = None
        self._release_waiters()
