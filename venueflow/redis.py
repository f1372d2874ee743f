from typing import Optional

import redis.asyncio as redis

_redis_client: Optional[redis.Redis] = None


async def init_redis(url: str) -> redis.Redis:
    """
    Initialize the global redis client. Called on startup when the redis
    admission backend is configured.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(url, decode_responses=True)
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


def get_redis() -> redis.Redis:
    """
    Return the initialized redis client or raise.
    """
    if _redis_client is None:
        raise RuntimeError("Redis is not initialized. Call init_redis on startup.")
    return _redis_client
