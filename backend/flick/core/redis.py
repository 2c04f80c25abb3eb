"""
Shared async Redis client.

Holds the reaction history written by RedisKeyValueStorage and backs the
slowapi limiter. One pool per process, opened in the app lifespan.
"""

import asyncio
import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from flick.core.config import get_settings

logger = logging.getLogger(__name__)

_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


def _reset_redis() -> None:
    """Forget the module-level client without closing it (tests only)."""
    global _redis_pool, _redis_client
    _redis_pool = None
    _redis_client = None


def _backoff(attempt: int, base: float) -> float:
    return base * (2**attempt)


async def init_redis() -> None:
    """
    Open the pool and confirm Redis answers PING.

    Tries settings.redis_connect_attempts times, doubling the wait from
    settings.redis_retry_base_delay_seconds between tries. Raises
    RuntimeError when every attempt fails so startup aborts.
    """
    global _redis_pool, _redis_client
    settings = get_settings()

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            decode_responses=True,
        )
        _redis_client = Redis(connection_pool=_redis_pool)

    attempts = settings.redis_connect_attempts
    last_error: Optional[Exception] = None

    for attempt in range(attempts):
        try:
            await _redis_client.ping()
        except (RedisError, OSError) as e:
            last_error = e
            if attempt == attempts - 1:
                break
            delay = _backoff(attempt, settings.redis_retry_base_delay_seconds)
            logger.warning(
                "Redis ping %d/%d failed, next try in %.1fs: %s", attempt + 1, attempts, delay, e
            )
            await asyncio.sleep(delay)
        else:
            logger.info("Redis ready at %s", settings.redis_url)
            return

    raise RuntimeError(f"Redis connection failed after {attempts} attempts: {last_error}")


async def close_redis() -> None:
    global _redis_pool, _redis_client
    client, pool = _redis_client, _redis_pool
    _redis_client = _redis_pool = None

    if client is not None:
        await client.close()
    if pool is not None:
        await pool.disconnect()


def get_redis() -> Redis:
    """The process-wide client; RuntimeError before init_redis() has run."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client
