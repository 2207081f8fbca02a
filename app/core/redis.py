"""Redis client helpers."""

import logging
from typing import Any, Awaitable, cast

from redis.asyncio import Redis

from app.config import settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None

# Delete the key only if it still holds our token.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisLockClient:
    """Typed lock operations over the shared Redis client."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def acquire(self, key: str, token: str, *, ttl_seconds: int) -> bool:
        """Set the lock key if absent; return True when this caller owns it."""
        result = await cast(
            Awaitable[Any],
            self._client.set(key, token, nx=True, px=max(1, ttl_seconds) * 1000),
        )
        return bool(result)

    async def release(self, key: str, token: str) -> bool:
        """Release the lock key only when it is still owned by `token`."""
        result = await cast(
            Awaitable[Any],
            self._client.eval(_RELEASE_SCRIPT, 1, key, token),
        )
        return int(result or 0) == 1


def get_redis_client() -> Redis:
    """Get a shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


def get_redis_lock_client() -> RedisLockClient:
    """Get typed lock operations on the shared Redis client."""
    return RedisLockClient(get_redis_client())


async def close_redis() -> None:
    """Close Redis client connections."""
    global _redis_client
    if _redis_client is None:
        return

    await _redis_client.aclose()
    _redis_client = None
    logger.info("Redis connection closed")
