"""
Redis-backed rate limiter shared by every API instance
"""
import redis
import time
import logging
from typing import Callable, Optional

from learning_engine.utils.rate_limiter import RateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


class RedisRateLimiter(RateLimiter):
    """
    Rate limiter storing one counter per key in Redis

    The first request of a window creates the key with a PX expiry equal to
    the window, so the TTL doubles as the window end. Unavailable Redis fails
    open and logs the error.
    """

    KEY_PREFIX = "ratelimit:"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(clock)
        if client is not None:
            self.redis_client = client
            return

        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Rate limiting disabled.")
            self.redis_client = None

    def _redis_key(self, identifier: str, limit: int, window_ms: int) -> str:
        return self.KEY_PREFIX + self.store_key(identifier, limit, window_ms)

    def _fail_open(self, limit: int, window_ms: int) -> RateLimitResult:
        return RateLimitResult(allowed=True, remaining=limit, limit=limit, reset_at=self.now_ms() + window_ms)

    def check(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        invalid = self._invalid(identifier, limit, window_ms)
        if invalid:
            return invalid
        if not self.redis_client:
            return self._fail_open(limit, window_ms)

        key = self._redis_key(identifier, limit, window_ms)
        try:
            pipe = self.redis_client.pipeline(transaction=True)
            pipe.set(key, 0, px=window_ms, nx=True)
            pipe.incr(key)
            pipe.pttl(key)
            _, count, ttl = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Rate limit check error: {str(e)}")
            return self._fail_open(limit, window_ms)

        now = self.now_ms()
        if ttl is None or ttl < 0:
            ttl = window_ms
        count = int(count)
        return RateLimitResult(
            allowed=count <= limit,
            remaining=max(0, limit - count),
            limit=limit,
            reset_at=now + int(ttl),
        )

    def status(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        if not self.redis_client:
            return self._fail_open(limit, window_ms)

        key = self._redis_key(identifier, limit, window_ms)
        try:
            pipe = self.redis_client.pipeline(transaction=True)
            pipe.get(key)
            pipe.pttl(key)
            value, ttl = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Rate limit status error: {str(e)}")
            return self._fail_open(limit, window_ms)

        if value is None or ttl is None or ttl < 0:
            return self._fail_open(limit, window_ms)

        count = int(value)
        return RateLimitResult(
            allowed=count < limit,
            remaining=max(0, limit - count),
            limit=limit,
            reset_at=self.now_ms() + int(ttl),
        )

    def reset(self, identifier: str, limit: int, window_ms: int) -> None:
        if not self.redis_client:
            return
        try:
            self.redis_client.delete(self._redis_key(identifier, limit, window_ms))
        except redis.RedisError as e:
            logger.error(f"Rate limit reset error: {str(e)}")

    def reset_all(self) -> None:
        """Clear every rate limit key"""
        if not self.redis_client:
            return
        try:
            keys = list(self.redis_client.scan_iter(match=f"{self.KEY_PREFIX}*"))
            if keys:
                self.redis_client.delete(*keys)
                logger.info(f"Cleared {len(keys)} rate limit entries")
        except redis.RedisError as e:
            logger.error(f"Rate limit clear error: {str(e)}")
