"""
Redis Store
===========
Redis-backed key-value store using redis-py's asyncio client.

Transactions map onto a WATCH/MULTI/EXEC pipeline; an aborted EXEC surfaces
as ``None`` rather than ``WatchError``.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Union

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError, WatchError

from .base import KeyValueStore, Transaction

logger = structlog.get_logger(__name__)


def _to_str(value: Optional[Union[bytes, str]]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


class RedisTransaction(Transaction):
    """Wraps a watching redis pipeline."""

    def __init__(self, pipe):
        self._pipe = pipe

    async def get(self, key: str) -> Optional[str]:
        return _to_str(await self._pipe.get(key))

    async def ttl(self, key: str) -> int:
        return int(await self._pipe.ttl(key))

    def multi(self) -> None:
        self._pipe.multi()

    def delete(self, *keys: str) -> None:
        self._pipe.delete(*keys)

    def incr(self, key: str) -> None:
        self._pipe.incr(key)

    def expire(self, key: str, seconds: int) -> None:
        self._pipe.expire(key, seconds)

    async def execute(self) -> Optional[List[Any]]:
        try:
            return await self._pipe.execute()
        except WatchError:
            logger.info("Redis transaction aborted by concurrent write")
            return None


class RedisStore(KeyValueStore):
    """
    Key-value store over an async Redis client.

    The client is owned by the caller when passed in; ``from_url`` creates one
    this store owns and closes.
    """

    name = "redis"

    def __init__(self, client: aioredis.Redis, owns_client: bool = False):
        self.client = client
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisStore":
        client = aioredis.from_url(url, decode_responses=True, **kwargs)
        logger.info("Redis store created", host=url.split("@")[-1])
        return cls(client, owns_client=True)

    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
        nx: bool = False,
    ) -> bool:
        result = await self.client.set(key, value, ex=ttl, nx=nx)
        return bool(result)

    async def get(self, key: str) -> Optional[str]:
        return _to_str(await self.client.get(key))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.client.delete(*keys))

    async def incr(self, key: str) -> int:
        return int(await self.client.incr(key))

    @asynccontextmanager
    async def watch(self, *keys: str) -> AsyncIterator[Transaction]:
        async with self.client.pipeline(transaction=True) as pipe:
            await pipe.watch(*keys)
            yield RedisTransaction(pipe)

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
            logger.info("Redis store closed")
