"""Sliding-window admission control over counters kept in the shared store.

The window is approximated from two fixed windows: the count of the previous
window is weighted by how much of it still overlaps the trailing window, and
added to the count of the current one. Counters are incremented with a single
INCR so concurrent callers never read-modify-write the same value.
"""
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from .redis_helper import store_call

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "suno-ratelimit"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


class SlidingWindowRateLimiter:
    def __init__(
        self,
        redis_client,
        max_requests: int = 20,
        window_seconds: int = 10,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self._redis = redis_client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._prefix = prefix
        self._clock = clock

    def _key(self, key: str, window: int) -> str:
        return f"{self._prefix}:{key}:{window}"

    async def try_acquire(self, key: str) -> RateLimitResult:
        """Consume one slot for `key` if the trailing window has room."""
        window_ms = self.window_seconds * 1000
        now_ms = int(self._clock() * 1000)
        current_window = now_ms // window_ms
        reset_at = (current_window + 1) * window_ms / 1000

        current_key = self._key(key, current_window)
        with store_call("rate limit"):
            previous = int(await self._redis.get(self._key(key, current_window - 1)) or 0)
            current = await self._redis.incr(current_key)
            if current == 1:
                # Needed while it is the previous window too
                await self._redis.pexpire(current_key, window_ms * 2 + 1000)

        overlap = 1 - (now_ms % window_ms) / window_ms
        used = math.floor(previous * overlap) + current
        if used > self.max_requests:
            with store_call("rate limit"):
                await self._redis.decr(current_key)
            logger.debug("rate limit hit for %s (%d/%d)", key, used - 1, self.max_requests)
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)

        return RateLimitResult(allowed=True, remaining=self.max_requests - used, reset_at=reset_at)
