"""Sliding window throttling for credential endpoints."""

from __future__ import annotations

import logging
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Deque, Protocol

import redis

from ..config import Settings
from .redis_rate_limiter import RedisSlidingWindowRateLimiter

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    """Anything that can admit or refuse a request for a throttling key."""

    window_seconds: int

    def allow(self, key: str) -> bool: ...


class SlidingWindowRateLimiter:
    """Thread-safe in-process limiter keyed by caller address."""

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.window_seconds = window_seconds
        self._max_requests = max_requests
        self._hits: defaultdict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()
        self._last_sweep = time.monotonic()

    def allow(self, key: str) -> bool:
        """Record a hit for ``key`` and report whether it fits in the current window."""
        now = time.monotonic()
        cutoff = now - self.window_seconds
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self._max_requests:
                return False
            hits.append(now)
            return True

    def _sweep(self, cutoff: float) -> None:
        """Drop keys whose newest hit fell out of the window."""
        for key in [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Instantiate the configured backend, using Redis only when it answers a ping."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            client = redis.from_url(settings.redis_url)
            client.ping()
        except (redis.RedisError, ValueError) as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)
        else:
            logger.info("rate limiter configured for redis backend at %s", settings.redis_url)
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
