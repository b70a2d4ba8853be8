"""Redis-based response cache keyed by request URL."""

from __future__ import annotations

import json
from typing import Any, Optional

import redis
from redis.exceptions import RedisError

from hackernews.settings import HackerNewsSettings


class RedisResponseCache:
    """Redis cache for serialized route responses."""

    def __init__(self, redis_url: str = "redis://localhost:6379/1", ttl_seconds: int = 300):
        """Initialize Redis client.

        Args:
            redis_url: Redis connection URL (default: redis://localhost:6379/1)
            ttl_seconds: Lifetime of a cached response
        """
        self.client = redis.Redis.from_url(redis_url, decode_responses=True)
        self.ttl = ttl_seconds

    @staticmethod
    def _key(url: str) -> str:
        return f"hn:response:{url}"

    def get(self, url: str) -> Optional[Any]:
        """Retrieve a cached response body.

        Args:
            url: Full request URL

        Returns:
            Decoded JSON payload or None if not cached
        """
        try:
            data = self.client.get(self._key(url))
        except RedisError:
            return None
        return json.loads(data) if data else None

    def set(self, url: str, payload: Any) -> None:
        """Store a response body.

        Args:
            url: Full request URL
            payload: JSON-serializable response body
        """
        try:
            self.client.setex(self._key(url), self.ttl, json.dumps(payload))
        except RedisError:
            return


class NullResponseCache:
    """Cache used when no Redis URL is configured."""

    def get(self, url: str) -> Optional[Any]:  # pragma: no cover - trivial
        return None

    def set(self, url: str, payload: Any) -> None:  # pragma: no cover - trivial
        return None


def build_response_cache(settings: HackerNewsSettings):
    if not settings.cache_url:
        return NullResponseCache()
    return RedisResponseCache(settings.cache_url, ttl_seconds=settings.cache_ttl_seconds)
