"""Redis client for campaign funnel counters.

Redis holds nothing but funnel counters, which are recorded best-effort, so
an unreachable server at startup is logged rather than fatal; the client
reconnects on its own once the server is back. Socket timeouts are short
for the same reason: a slow Redis must not stall a respondent's request.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from deepform.core.config import get_settings

logger = structlog.get_logger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str | None = None) -> redis.Redis:
    """Create the shared client (once) and check that the server answers."""
    global _client

    if _client is None:
        settings = get_settings()
        _client = redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_timeout_seconds,
            socket_connect_timeout=settings.redis_timeout_seconds,
        )
        try:
            await _client.ping()
        except RedisError as exc:
            logger.warning("redis_unavailable_at_startup", error=str(exc))
    return _client


async def close_redis() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the shared client; init_redis() must have run."""
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client
