"""Reservoir rate limiter — one gate shared by every embedding call in the process.

Three limits are enforced jointly before a call is dispatched:

- reservoir: at most ``reservoir`` dispatches in any rolling ``interval``
- concurrency: at most ``max_concurrent`` calls in flight
- spacing: at least ``min_time`` seconds between consecutive dispatches

The reservoir is tracked as a sliding window of dispatch timestamps, so the
bound holds for every window, not only for windows aligned to a refill tick.
Clock and sleep are injectable so tests can drive the limiter without waiting.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RateLimitConfig:
    """Limits for the shared embedding gate."""

    reservoir: int = 5000
    interval: float = 60.0
    max_concurrent: int = 50
    min_time: float = 0.012


class ReservoirRateLimiter:
    """Async reservoir + concurrency + spacing limiter.

    Usage:
        limiter = ReservoirRateLimiter(RateLimitConfig(reservoir=5000))
        async with limiter.slot():
            await provider.create_embedding(text)
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self._config = config or RateLimitConfig()
        if self._config.reservoir < 1:
            raise ValueError("reservoir must be at least 1")
        if self._config.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self._clock = clock
        self._sleep = sleep

        self._dispatches: deque[float] = deque()
        self._last_dispatch: float | None = None
        self._in_flight = 0

        # The gate serialises dispatch decisions; slots bound the in-flight calls.
        self._gate = asyncio.Lock()
        self._slots = asyncio.Semaphore(self._config.max_concurrent)

        # Metrics
        self.total_dispatched = 0
        self.total_wait_time = 0.0
        self.rate_limit_hits = 0

        logger.info(
            "Rate limiter initialized: reservoir=%d/%.0fs, max_concurrent=%d, min_time=%.3fs",
            self._config.reservoir,
            self._config.interval,
            self._config.max_concurrent,
            self._config.min_time,
        )

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def acquire(self) -> None:
        """Block until a call may be dispatched, then count it as in flight."""
        async with self._gate:
            await self._slots.acquire()
            try:
                await self._wait_for_dispatch()
            except BaseException:
                self._slots.release()
                raise
            self._in_flight += 1

    def release(self) -> None:
        """Mark a dispatched call as finished."""
        self._in_flight -= 1
        self._slots.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one dispatch for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def schedule(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Run ``func(*args)`` once the limiter admits it."""
        async with self.slot():
            return await func(*args)

    async def _wait_for_dispatch(self) -> None:
        started = self._clock()
        limited = False

        while True:
            now = self._clock()
            self._expire(now)
            delay = self._dispatch_delay(now)
            if delay <= 0:
                break
            limited = True
            await self._sleep(delay)

        self._dispatches.append(now)
        self._last_dispatch = now
        self.total_dispatched += 1

        if limited:
            self.rate_limit_hits += 1
            self.total_wait_time += now - started

    def _dispatch_delay(self, now: float) -> float:
        """Seconds until both the reservoir and the spacing allow a dispatch."""
        delay = 0.0
        if len(self._dispatches) >= self._config.reservoir:
            delay = max(delay, self._config.interval - (now - self._dispatches[0]))
        if self._last_dispatch is not None:
            delay = max(delay, self._config.min_time - (now - self._last_dispatch))
        return delay

    def _expire(self, now: float) -> None:
        """Return permits whose dispatch left the rolling window."""
        while self._dispatches and now - self._dispatches[0] >= self._config.interval:
            self._dispatches.popleft()

    def get_metrics(self) -> dict[str, Any]:
        """Snapshot of limits, current usage and lifetime counters."""
        now = self._clock()
        self._expire(now)
        return {
            "limits": {
                "reservoir": self._config.reservoir,
                "interval": self._config.interval,
                "max_concurrent": self._config.max_concurrent,
                "min_time": self._config.min_time,
            },
            "current_usage": {
                "in_flight": self._in_flight,
                "dispatched_in_window": len(self._dispatches),
                "reservoir_remaining": max(0, self._config.reservoir - len(self._dispatches)),
            },
            "all_time_metrics": {
                "total_dispatched": self.total_dispatched,
                "rate_limit_hits": self.rate_limit_hits,
                "total_wait_time": round(self.total_wait_time, 3),
            },
        }

    def __repr__(self) -> str:
        return (
            f"ReservoirRateLimiter(reservoir={self._config.reservoir}, "
            f"interval={self._config.interval}, max_concurrent={self._config.max_concurrent}, "
            f"min_time={self._config.min_time})"
        )
