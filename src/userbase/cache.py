"""Redis client — shared by the rate limiter and the health check.

Learn: Redis is optional. The client is connected in the app lifespan;
if Redis is down at startup the app still serves requests, it just
stops rate limiting (get_redis() raises and callers skip).
"""

from typing import Optional

import redis.asyncio as aioredis

from userbase.config import settings

# Set by connect in the lifespan, cleared on shutdown
_client: Optional[aioredis.Redis] = None


async def init_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Connect and ping. The client is only published once it answers."""
    global _client
    candidate = aioredis.from_url(url or settings.redis_url, decode_responses=True)
    try:
        await candidate.ping()
    except Exception:
        await candidate.aclose()
        raise
    _client = candidate
    return _client


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()


def get_redis() -> aioredis.Redis:
    """The connected client. RuntimeError when Redis was never reached."""
    if _client is None:
        raise RuntimeError("Redis is not connected")
    return _client
