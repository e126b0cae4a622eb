"""
Sliding-window rate limiting for API endpoints

Each (identifier, limit, window) tuple owns one counter. The window opens on
the first request and closes window_ms later; the next request after that
opens a fresh window.
"""
import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional
import logging

from fastapi import Request

from learning_engine.config import settings
from learning_engine.exceptions import RateLimited

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check; reset_at is epoch milliseconds"""
    allowed: bool
    remaining: int
    limit: int
    reset_at: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at / 1000)),
        }

    def retry_after(self, now_ms: int) -> int:
        """Seconds until the current window closes (at least 1)"""
        return max(1, math.ceil((self.reset_at - now_ms) / 1000))


@dataclass
class RateWindowEntry:
    count: int
    window_start: int


class RateLimiter(ABC):
    """
    Rate limiter interface

    Call sites only depend on this class so a shared-store implementation can
    replace the in-memory one for multi-instance deployments.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def store_key(identifier: str, limit: int, window_ms: int) -> str:
        # Escape the delimiter so identifiers cannot collide with other keys
        safe_identifier = identifier.replace("|", "%7C")
        return f"{safe_identifier}|{limit}|{window_ms}"

    def _invalid(self, identifier: str, limit: int, window_ms: int) -> Optional[RateLimitResult]:
        if not identifier or not isinstance(identifier, str):
            return RateLimitResult(allowed=False, remaining=0, limit=0, reset_at=self.now_ms())
        if not isinstance(limit, int) or limit <= 0:
            return RateLimitResult(allowed=False, remaining=0, limit=0, reset_at=self.now_ms())
        if not isinstance(window_ms, int) or window_ms <= 0:
            return RateLimitResult(allowed=False, remaining=0, limit=0, reset_at=self.now_ms())
        return None

    @abstractmethod
    def check(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one request and report whether it is allowed"""

    @abstractmethod
    def status(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        """Report the current window without counting a request"""

    @abstractmethod
    def reset(self, identifier: str, limit: int, window_ms: int) -> None:
        """Forget the window for one key"""

    @abstractmethod
    def reset_all(self) -> None:
        """Forget every window"""

    def get_client_id(self, request: Request) -> str:
        """Client address; limits apply before authentication"""
        client_ip = request.client.host if request.client else "unknown"
        return client_ip

    def enforce(self, identifier: str, limit: int, window_ms: int, scope: str = "api") -> RateLimitResult:
        """
        Check a request and raise RateLimited when it is over the limit

        Raises:
            RateLimited: 429 with X-RateLimit-* headers and retryAfter
        """
        result = self.check(f"{scope}:{identifier}", limit, window_ms)
        if not result.allowed:
            retry_after = result.retry_after(self.now_ms())
            logger.warning(f"Rate limit exceeded ({scope}): {identifier}")
            raise RateLimited(
                f"Too many requests. Limit: {limit} requests per {window_ms // 1000} seconds",
                headers={**result.headers(), "Retry-After": str(retry_after)},
                retryAfter=retry_after,
            )
        return result


class InMemoryRateLimiter(RateLimiter):
    """
    In-memory rate limiter
    Production: Use RedisRateLimiter for distributed rate limiting
    """

    MAX_STORE_SIZE = 10000

    def __init__(self, clock: Callable[[], float] = time.time, max_store_size: int = MAX_STORE_SIZE):
        super().__init__(clock)
        self.max_store_size = max_store_size
        self._store: Dict[str, RateWindowEntry] = {}
        self._lock = threading.Lock()

    def _cleanup_expired_entries(self, now: int):
        """Remove windows that have already closed"""
        for key in list(self._store.keys()):
            window_ms = int(key.rsplit("|", 1)[1])
            if self._store[key].window_start + window_ms <= now:
                del self._store[key]

    def check(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        invalid = self._invalid(identifier, limit, window_ms)
        if invalid:
            return invalid

        key = self.store_key(identifier, limit, window_ms)

        with self._lock:
            now = self.now_ms()
            entry = self._store.get(key)

            if entry is None and len(self._store) >= self.max_store_size:
                self._cleanup_expired_entries(now)
                # Still full: deny rather than grow without bound
                if len(self._store) >= self.max_store_size:
                    logger.warning("Rate limit store full, rejecting new key")
                    return RateLimitResult(allowed=False, remaining=0, limit=limit, reset_at=now + window_ms)

            if entry is None or now - entry.window_start >= window_ms:
                self._store[key] = RateWindowEntry(count=1, window_start=now)
                return RateLimitResult(allowed=True, remaining=limit - 1, limit=limit, reset_at=now + window_ms)

            entry.count += 1
            return RateLimitResult(
                allowed=entry.count <= limit,
                remaining=max(0, limit - entry.count),
                limit=limit,
                reset_at=entry.window_start + window_ms,
            )

    def status(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        key = self.store_key(identifier, limit, window_ms)
        now = self.now_ms()
        entry = self._store.get(key)

        if entry is None or now - entry.window_start >= window_ms:
            return RateLimitResult(allowed=True, remaining=limit, limit=limit, reset_at=now + window_ms)

        return RateLimitResult(
            allowed=entry.count < limit,
            remaining=max(0, limit - entry.count),
            limit=limit,
            reset_at=entry.window_start + window_ms,
        )

    def reset(self, identifier: str, limit: int, window_ms: int) -> None:
        with self._lock:
            self._store.pop(self.store_key(identifier, limit, window_ms), None)

    def reset_all(self) -> None:
        with self._lock:
            self._store.clear()


def create_rate_limiter(backend: str) -> RateLimiter:
    """Build the configured rate limiter backend"""
    if backend == "redis":
        from learning_engine.utils.redis_rate_limiter import RedisRateLimiter
        return RedisRateLimiter(settings.REDIS_URL)
    return InMemoryRateLimiter()


# Global instance
rate_limiter = create_rate_limiter(settings.RATE_LIMIT_BACKEND)
