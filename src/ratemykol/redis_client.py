"""Shared Redis client.

Redis is optional. It backs the per-IP rate-limit counters and the cached
kolscan leaderboard scrape; every consumer treats an uninitialized client
(``RuntimeError`` from ``get_redis``) as "no cache, no throttling".
"""

import redis.asyncio as redis

KEY_PREFIX = "ratemykol"

_client: redis.Redis | None = None


def redis_key(*parts: object) -> str:
    """Namespaced key, e.g. ``redis_key("ratelimit", "api", ip, window)``."""
    return ":".join([KEY_PREFIX, *(str(p) for p in parts)])


async def init_redis(url: str) -> None:
    """Connect to Redis. Called from the app lifespan only when ``RMK_REDIS_URL`` is set."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the client. Raises RuntimeError when Redis is disabled or not yet connected."""
    if _client is None:
        msg = "Redis not initialized. Set RMK_REDIS_URL to enable rate limiting and the leaderboard cache."
        raise RuntimeError(msg)
    return _client
