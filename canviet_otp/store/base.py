"""
Key-Value Store Interface
=========================
The primitives the OTP engine needs from its backing store: conditional set,
plain reads and writes, and an optimistic watch/multi/exec transaction.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, List, Optional


class Transaction(ABC):
    """
    An optimistic transaction over a set of watched keys.

    Reads run immediately. After ``multi()`` writes are queued and applied
    atomically by ``execute()``, which returns ``None`` instead of results if
    any watched key changed since ``watch`` was called.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Remaining seconds; -1 without expiry, -2 if the key is absent."""
        ...

    @abstractmethod
    def multi(self) -> None:
        ...

    @abstractmethod
    def delete(self, *keys: str) -> None:
        ...

    @abstractmethod
    def incr(self, key: str) -> None:
        ...

    @abstractmethod
    def expire(self, key: str, seconds: int) -> None:
        ...

    @abstractmethod
    async def execute(self) -> Optional[List[Any]]:
        ...


class KeyValueStore(ABC):
    """Shared, possibly multi-tenant key-value store."""

    name: str = "base"

    @abstractmethod
    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
        nx: bool = False,
    ) -> bool:
        """
        Write a value.

        Args:
            key: Key to write
            value: String value
            ttl: Expiry in seconds
            nx: Only write if the key does not exist

        Returns:
            True if written, False if ``nx`` and the key already existed
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        ...

    @abstractmethod
    async def incr(self, key: str) -> int:
        ...

    @abstractmethod
    def watch(self, *keys: str) -> AsyncContextManager[Transaction]:
        """
        Open a transaction watching ``keys``.

        Leaving the context discards any unexecuted queue and releases the
        watch.
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        """Release connections."""
        return None
