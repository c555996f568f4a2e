"""
Redis cache for read-heavy listings (leaderboard)

Every operation degrades to a miss when Redis is unset or unreachable; the
database stays the source of truth.
"""
import redis
import json
import logging
from typing import Optional, Any
from hamexam.config import settings

logger = logging.getLogger(__name__)


def make_key(prefix: str, *parts: Any) -> str:
    return ":".join([prefix] + [str(p) for p in parts])


class CacheService:
    """JSON values in Redis with a TTL"""

    def __init__(self, url: str = ""):
        self.redis_client = None
        if not url:
            logger.info("REDIS_URL not set. Caching disabled.")
            return

        try:
            self.redis_client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None

    def ping(self) -> bool:
        if not self.enabled:
            return False
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {str(e)}")
            return False

    def get(self, key: str) -> Optional[Any]:
        """Decoded value, or None on a miss or any Redis error"""
        if not self.enabled:
            return None

        try:
            value = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Cache get error for {key}: {str(e)}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    def set(self, key: str, value: Any, ttl: int = 60) -> bool:
        """
        Store a JSON-serializable value

        Args:
            key: Cache key
            value: Value to cache; datetimes and UUIDs are stored as strings
            ttl: Time to live in seconds

        Returns:
            Whether the value was stored
        """
        if not self.enabled:
            return False

        try:
            self.redis_client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except (redis.RedisError, TypeError) as e:
            logger.error(f"Cache set error for {key}: {str(e)}")
            return False

    def delete_prefix(self, prefix: str) -> int:
        """Drop every key under prefix; returns how many were removed"""
        if not self.enabled:
            return 0

        try:
            keys = list(self.redis_client.scan_iter(match=f"{prefix}:*"))
            if keys:
                self.redis_client.delete(*keys)
                logger.info(f"Invalidated {len(keys)} cache entries under {prefix}")
            return len(keys)
        except redis.RedisError as e:
            logger.error(f"Cache invalidation error for {prefix}: {str(e)}")
            return 0


# Global instance
cache_service = CacheService(settings.REDIS_URL)
