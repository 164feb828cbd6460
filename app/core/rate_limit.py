"""
Fixed window rate limiting for the auth routes.

Counters live in Redis (INCR + EXPIRE) so every worker process shares them. When Redis
is not configured or unreachable the limiter falls back to per-process counters and
re-checks Redis at most every REDIS_RECHECK_INTERVAL seconds.
"""

import logging
import time
from threading import Lock
from typing import Dict, Optional, Tuple

from fastapi import Request
from redis import Connection, ConnectionPool, Redis, RedisError, SSLConnection

from app.core.config import settings
from app.core.errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class HybridRateLimiter:
    """Fixed window counter with Redis + in-memory fallback"""

    def __init__(self, limit: int, window_seconds: int, key_prefix: str = "ratelimit:auth"):
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.redis_available = False
        self._last_redis_check: Optional[float] = None
        self._memory: Dict[str, Tuple[int, float]] = {}
        self._memory_lock = Lock()

        if settings.REDIS_HOST is None or settings.REDIS_HOST.strip() == "":
            self.pool = None
            return
        self.pool = ConnectionPool(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            socket_connect_timeout=0.05,
            socket_timeout=5,
            retry_on_timeout=False,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            connection_class=SSLConnection if settings.REDIS_SSL else Connection,
        )

    def redis_connect(self) -> Optional[Redis]:
        """Connect to Redis, with a cooldown between checks when unavailable"""
        if self.pool is None:
            return None

        now = time.time()
        if not self.redis_available and self._last_redis_check is not None:
            if now - self._last_redis_check < settings.REDIS_RECHECK_INTERVAL:
                return None

        try:
            rc = Redis(connection_pool=self.pool)
            if rc.ping():
                self.redis_available = True
                return rc
        except RedisError:
            pass

        if self.redis_available:
            logger.warning("redis unavailable, rate limiting falls back to process memory")
        self.redis_available = False
        self._last_redis_check = now
        return None

    def hit(self, client_key: str) -> Tuple[int, int]:
        """Count one request. Returns (requests in current window, seconds until reset)."""
        key = f"{self.key_prefix}:{client_key}"
        result = self._hit_redis(key)
        if result is not None:
            return result
        return self._hit_memory(key)

    def _hit_redis(self, key: str) -> Optional[Tuple[int, int]]:
        rc = self.redis_connect()
        if rc is None:
            return None
        try:
            count = rc.incr(key)
            if count == 1:
                rc.expire(key, self.window_seconds)
            ttl = rc.ttl(key)
            return int(count), int(ttl) if ttl and ttl > 0 else self.window_seconds
        except RedisError:
            return None
        finally:
            rc.close()

    def _hit_memory(self, key: str) -> Tuple[int, int]:
        now = time.time()
        with self._memory_lock:
            count, window_end = self._memory.get(key, (0, 0.0))
            if window_end <= now:
                count, window_end = 0, now + self.window_seconds
                # drop other finished windows while we hold the lock
                for stale in [k for k, (_, end) in self._memory.items() if end <= now]:
                    self._memory.pop(stale, None)
            count += 1
            self._memory[key] = (count, window_end)
            return count, max(int(window_end - now), 1)

    def reset(self) -> None:
        with self._memory_lock:
            self._memory.clear()


auth_rate_limiter = HybridRateLimiter(settings.AUTH_RATE_LIMIT, settings.AUTH_RATE_WINDOW_SECONDS)


def _client_key(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def limit_auth_requests(request: Request) -> None:
    """Dependency: reject the request once the client exhausts its auth budget."""
    count, retry_after = auth_rate_limiter.hit(_client_key(request))
    if count > auth_rate_limiter.limit:
        logger.warning("auth rate limit exceeded for %s", _client_key(request))
        raise RateLimitExceeded(retry_after=retry_after)
