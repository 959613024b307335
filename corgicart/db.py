"""
Storage Clients and Record Keys

Provides:
- A lazily created async Upstash Redis client for the Redis backend
- Record key naming shared by every persistence backend
- TTL constants
"""

from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from corgicart.config import DEFAULT_TTL_SECONDS, CartSettings, load_settings
from corgicart.errors import ERROR_REDIS_NOT_CONFIGURED

# Singleton instance
_redis_client: Optional[AsyncRedis] = None


def get_redis(settings: Optional[CartSettings] = None) -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses the standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        settings = settings or load_settings()
        if not settings.redis_configured:
            raise ValueError(ERROR_REDIS_NOT_CONFIGURED)
        _redis_client = AsyncRedis(url=settings.redis_url, token=settings.redis_token)

    return _redis_client


class RedisKeys:
    """Record keys for the two independent cart records."""

    CART = "_cart"  # {namespace}_cart -> JSON array of line items
    NOTIFICATIONS = "_notifications"  # {namespace}_notifications -> JSON int

    @staticmethod
    def cart_key(namespace: str) -> str:
        return f"{namespace}{RedisKeys.CART}"

    @staticmethod
    def notifications_key(namespace: str) -> str:
        return f"{namespace}{RedisKeys.NOTIFICATIONS}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    CART = DEFAULT_TTL_SECONDS  # 30 days
