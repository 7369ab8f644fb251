"""
Key-Value Store Adapters
========================
Backing stores for OTP records and attempt counters.
"""

from .base import KeyValueStore, Transaction
from .in_memory import InMemoryStore
from .redis_store import RedisStore

__all__ = [
    "KeyValueStore",
    "Transaction",
    "InMemoryStore",
    "RedisStore",
]
