"""
Durable key-value storage for per-player client state.

Values are opaque strings (callers serialize JSON themselves).
Nothing here expires, and errors propagate: callers decide whether a
failed read or write is fatal.
"""

from typing import Optional, Protocol

from redis.asyncio import Redis

from flick.core.redis import get_redis


class KeyValueStorage(Protocol):
    """Async get/set/remove by string key."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


class RedisKeyValueStorage:
    """KeyValueStorage backed by the shared async Redis client."""

    def __init__(self, redis: Optional[Redis] = None) -> None:
        self._redis = redis

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    async def get_item(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set_item(self, key: str, value: str) -> None:
        await self.redis.set(key, value)

    async def remove_item(self, key: str) -> None:
        await self.redis.delete(key)


def reaction_history_key(prefix: str, player_id: str) -> str:
    """Key holding one player's reaction toggle history."""
    return f"{prefix}:{player_id}"
