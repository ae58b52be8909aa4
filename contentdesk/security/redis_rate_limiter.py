"""Redis-backed sliding window limiter shared across service replicas."""

from __future__ import annotations

import time
from typing import Final

from redis import Redis
from redis.exceptions import ResponseError

# KEYS[1] = hit set; ARGV = window_ms, max_requests, now_ms, member
_ADMIT_SCRIPT: Final[str] = """
local hits = KEYS[1]
local window_ms = tonumber(ARGV[1])
local limit = tonumber(ARGV[2])
local now_ms = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', hits, '-inf', now_ms - window_ms)
if redis.call('ZCARD', hits) >= limit then
    return 0
end
redis.call('ZADD', hits, now_ms, ARGV[4])
redis.call('PEXPIRE', hits, window_ms)
return 1
"""


class RedisSlidingWindowRateLimiter:
    """Limiter storing each hit as a sorted-set member scored by its timestamp."""

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "contentdesk:rate",
    ) -> None:
        self.window_seconds = window_seconds
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._admit = client.register_script(_ADMIT_SCRIPT)

    def allow(self, key: str) -> bool:
        """Return ``True`` when ``key`` is still under the shared limit."""
        hits_key = f"{self._key_prefix}:{key}"
        now_ms = int(time.time() * 1000)
        member = f"{now_ms}:{self._client.incr(f'{hits_key}:seq')}"
        self._client.pexpire(f"{hits_key}:seq", self._window_ms)
        try:
            admitted = self._admit(
                keys=[hits_key],
                args=[self._window_ms, self._max_requests, now_ms, member],
            )
        except ResponseError as exc:
            if "unknown command" not in str(exc).lower():
                raise
            return self._allow_without_scripting(hits_key, now_ms, member)
        return int(admitted) == 1

    def _allow_without_scripting(self, hits_key: str, now_ms: int, member: str) -> bool:
        """Plain-command path for servers that refuse EVAL/EVALSHA."""
        self._client.zremrangebyscore(hits_key, "-inf", now_ms - self._window_ms)
        if self._client.zcard(hits_key) >= self._max_requests:
            return False
        self._client.zadd(hits_key, {member: now_ms})
        self._client.pexpire(hits_key, self._window_ms)
        return True
