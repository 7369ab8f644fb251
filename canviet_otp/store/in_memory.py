"""
In-Memory Store
===============
Process-local key-value store with ttl and optimistic transactions.

For development and testing only. Use RedisStore in production.
"""

import asyncio
import math
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from .base import KeyValueStore, Transaction


@dataclass
class _Entry:
    value: str
    expires_at: Optional[float] = None


class InMemoryStore(KeyValueStore):
    """
    Dict-backed store mirroring the Redis semantics the engine relies on.

    Every write (including expiry) bumps a per-key version; a transaction
    aborts if any watched key's version moved. Each operation yields to the
    event loop once, like a network round trip, so concurrent tasks interleave.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, _Entry] = {}
        self._versions: Dict[str, int] = {}

    def _bump(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def _purge(self, key: str) -> None:
        entry = self._data.get(key)
        if entry and entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._data[key]
            self._bump(key)

    def _live(self, key: str) -> Optional[_Entry]:
        self._purge(key)
        return self._data.get(key)

    def _version(self, key: str) -> int:
        self._purge(key)
        return self._versions.get(key, 0)

    def _write(self, key: str, value: str, ttl: Optional[int] = None, keep_ttl: bool = False) -> None:
        current = self._live(key)
        if keep_ttl and current is not None:
            expires_at = current.expires_at
        else:
            expires_at = self._clock() + ttl if ttl else None
        self._data[key] = _Entry(value, expires_at)
        self._bump(key)

    def _delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                self._bump(key)
                removed += 1
        return removed

    def _incr(self, key: str) -> int:
        current = self._live(key)
        value = int(current.value) + 1 if current else 1
        self._write(key, str(value), keep_ttl=True)
        return value

    def _expire(self, key: str, seconds: int) -> bool:
        current = self._live(key)
        if current is None:
            return False
        current.expires_at = self._clock() + seconds
        self._bump(key)
        return True

    def _ttl(self, key: str) -> int:
        current = self._live(key)
        if current is None:
            return -2
        if current.expires_at is None:
            return -1
        return max(0, math.ceil(current.expires_at - self._clock()))

    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
        nx: bool = False,
    ) -> bool:
        await asyncio.sleep(0)
        if nx and self._live(key) is not None:
            return False
        self._write(key, value, ttl)
        return True

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        entry = self._live(key)
        return entry.value if entry else None

    async def delete(self, *keys: str) -> int:
        await asyncio.sleep(0)
        return self._delete(*keys)

    async def incr(self, key: str) -> int:
        await asyncio.sleep(0)
        return self._incr(key)

    @asynccontextmanager
    async def watch(self, *keys: str) -> AsyncIterator[Transaction]:
        await asyncio.sleep(0)
        yield InMemoryTransaction(self, {key: self._version(key) for key in keys})

    async def ping(self) -> bool:
        return True

    def ttl_of(self, key: str) -> int:
        """Synchronous ttl lookup for inspection in tests and tooling."""
        return self._ttl(key)


class InMemoryTransaction(Transaction):
    """Queued writes applied together if no watched key changed."""

    def __init__(self, store: InMemoryStore, watched: Dict[str, int]):
        self._store = store
        self._watched = watched
        self._queue: List[Tuple[str, tuple]] = []
        self._in_multi = False

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        entry = self._store._live(key)
        return entry.value if entry else None

    async def ttl(self, key: str) -> int:
        await asyncio.sleep(0)
        return self._store._ttl(key)

    def multi(self) -> None:
        self._in_multi = True

    def _enqueue(self, op: str, *args) -> None:
        if not self._in_multi:
            raise RuntimeError("multi() must be called before queueing writes")
        self._queue.append((op, args))

    def delete(self, *keys: str) -> None:
        self._enqueue("delete", *keys)

    def incr(self, key: str) -> None:
        self._enqueue("incr", key)

    def expire(self, key: str, seconds: int) -> None:
        self._enqueue("expire", key, seconds)

    async def execute(self) -> Optional[List[Any]]:
        await asyncio.sleep(0)
        store = self._store
        for key, version in self._watched.items():
            if store._version(key) != version:
                self._queue.clear()
                return None
        results: List[Any] = []
        for op, args in self._queue:
            if op == "delete":
                results.append(store._delete(*args))
            elif op == "incr":
                results.append(store._incr(*args))
            elif op == "expire":
                results.append(store._expire(*args))
        self._queue.clear()
        return results
