"""
Fixed-window rate limiting for API endpoints
"""
import time
from dataclasses import dataclass
from fastapi import Request, HTTPException
from typing import Callable, Dict, Optional
import logging
import math
import threading

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset_at: int  # epoch milliseconds


@dataclass
class _Bucket:
    tokens: int
    reset_at: int


class RateLimiter:
    """
    In-memory fixed-window limiter keyed by caller-supplied strings

    Best effort and per process: buckets are lost on restart. Built once at
    application start and kept on app.state; reset() clears it for tests.
    """

    def __init__(
        self,
        limit: int = 120,
        window_ms: int = 60_000,
        clock: Optional[Callable[[], float]] = None,
        trust_forwarded: bool = False
    ):
        self.limit = limit
        self.window_ms = window_ms
        self.trust_forwarded = trust_forwarded
        self._clock = clock or time.time
        self._buckets: Dict[str, _Bucket] = {}
        self._next_sweep = 0
        self._lock = threading.Lock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _cleanup_expired(self, now: int) -> None:
        """Remove buckets whose window has ended"""
        for key in [k for k, b in self._buckets.items() if b.reset_at <= now]:
            del self._buckets[key]
        self._next_sweep = now + self.window_ms

    def hit(self, key: str, limit: Optional[int] = None, window_ms: Optional[int] = None) -> RateLimitResult:
        """
        Count one request against key's current window

        Args:
            key: Bucket key (client id, or endpoint + client id)
            limit: Requests allowed per window (default: limiter's)
            window_ms: Window length in milliseconds (default: limiter's)
        """
        limit = limit or self.limit
        window_ms = window_ms or self.window_ms
        now = self._now_ms()

        with self._lock:
            if now >= self._next_sweep:
                self._cleanup_expired(now)

            bucket = self._buckets.get(key)

            if bucket is None or bucket.reset_at <= now:
                bucket = _Bucket(tokens=1, reset_at=now + window_ms)
                self._buckets[key] = bucket
                return RateLimitResult(True, limit - bucket.tokens, bucket.reset_at)

            if bucket.tokens >= limit:
                return RateLimitResult(False, 0, bucket.reset_at)

            bucket.tokens += 1
            return RateLimitResult(True, limit - bucket.tokens, bucket.reset_at)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._next_sweep = 0

    def client_key(self, request: Request) -> str:
        """Extract client identifier from request"""
        # Authenticated endpoints set user_id on the request state
        if hasattr(request.state, "user_id"):
            return str(request.state.user_id)

        # Only a trusted proxy may name the client
        forwarded = request.headers.get("x-forwarded-for") if self.trust_forwarded else None
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def check_rate_limit(
        self,
        request: Request,
        scope: Optional[str] = None,
        limit: Optional[int] = None,
        window_ms: Optional[int] = None
    ) -> RateLimitResult:
        """
        Check if request exceeds its bucket

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self.client_key(request)
        key = f"{scope}:{client_id}" if scope else client_id
        result = self.hit(key, limit, window_ms)

        if not result.success:
            retry_after = max(1, math.ceil((result.reset_at - self._now_ms()) / 1000))
            logger.warning(f"Rate limit exceeded: {key}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {limit or self.limit} requests per {(window_ms or self.window_ms) // 1000}s",
                    "retry_after": retry_after,
                    "status_code": 429
                },
                headers={"Retry-After": str(retry_after)}
            )

        logger.debug(f"Rate limit check passed: {key} (remaining: {result.remaining})")
        return result


def get_rate_limiter(request: Request) -> RateLimiter:
    """FastAPI dependency returning the app's limiter"""
    return request.app.state.rate_limiter
