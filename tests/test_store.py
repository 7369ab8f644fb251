"""
Tests for Key-Value Stores
==========================
In-memory store semantics and the Redis adapter's transaction mapping.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError


class TestInMemoryStore:
    """Tests for the dict-backed store."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, store):
        assert await store.set("k", "v") is True
        assert await store.get("k") == "v"
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_set_nx(self, store):
        """NX writes only when the key is absent."""
        assert await store.set("k", "first", ttl=10, nx=True) is True
        assert await store.set("k", "second", ttl=10, nx=True) is False
        assert await store.get("k") == "first"

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, store, clock):
        """Keys vanish once their ttl elapses."""
        await store.set("k", "v", ttl=10)

        clock.advance(9.5)
        assert await store.get("k") == "v"

        clock.advance(0.5)
        assert await store.get("k") is None
        assert await store.set("k", "again", ttl=10, nx=True) is True

    @pytest.mark.asyncio
    async def test_ttl_codes(self, store, clock):
        """-2 when absent, -1 without expiry, remaining seconds otherwise."""
        await store.set("forever", "v")
        await store.set("short", "v", ttl=30)
        clock.advance(10.2)

        assert store.ttl_of("missing") == -2
        assert store.ttl_of("forever") == -1
        assert store.ttl_of("short") == 20

    @pytest.mark.asyncio
    async def test_incr_keeps_ttl(self, store, clock):
        await store.set("n", "0", ttl=30)
        clock.advance(5)

        assert await store.incr("n") == 1
        assert await store.incr("n") == 2
        assert store.ttl_of("n") == 25

    @pytest.mark.asyncio
    async def test_incr_missing_key(self, store):
        """Incrementing an absent key creates it without expiry."""
        assert await store.incr("n") == 1
        assert store.ttl_of("n") == -1

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.set("a", "1")
        await store.set("b", "2")

        assert await store.delete("a", "b", "c") == 2
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_transaction_applies_queued_writes(self, store):
        await store.set("a", "1", ttl=60)
        await store.set("n", "0", ttl=60)

        async with store.watch("a", "n") as tx:
            assert await tx.get("a") == "1"
            tx.multi()
            tx.incr("n")
            tx.expire("n", 5)
            tx.delete("a")
            results = await tx.execute()

        assert results == [1, True, 1]
        assert await store.get("a") is None
        assert await store.get("n") == "1"
        assert store.ttl_of("n") == 5

    @pytest.mark.asyncio
    async def test_transaction_aborts_on_concurrent_write(self, store):
        """A write to a watched key after watch() aborts execute()."""
        await store.set("a", "1", ttl=60)

        async with store.watch("a") as tx:
            await tx.get("a")
            await store.set("a", "2", ttl=60)
            tx.multi()
            tx.delete("a")
            results = await tx.execute()

        assert results is None
        assert await store.get("a") == "2"

    @pytest.mark.asyncio
    async def test_transaction_aborts_on_expiry(self, store, clock):
        """Expiry of a watched key counts as a modification."""
        await store.set("a", "1", ttl=10)

        async with store.watch("a") as tx:
            clock.advance(11)
            tx.multi()
            tx.delete("a")
            results = await tx.execute()

        assert results is None

    @pytest.mark.asyncio
    async def test_transaction_ignores_unwatched_keys(self, store):
        await store.set("a", "1")

        async with store.watch("a") as tx:
            await store.set("other", "x")
            tx.multi()
            tx.delete("a")
            results = await tx.execute()

        assert results == [1]

    @pytest.mark.asyncio
    async def test_queueing_requires_multi(self, store):
        async with store.watch("a") as tx:
            with pytest.raises(RuntimeError):
                tx.delete("a")

    @pytest.mark.asyncio
    async def test_ping(self, store):
        assert await store.ping() is True


class FakePipeline:
    """Stands in for redis.asyncio's transactional pipeline."""

    def __init__(self, values, abort=False):
        self.values = values
        self.abort = abort
        self.watched = ()
        self.queued = []
        self.in_multi = False
        self.reset = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.reset = True

    async def watch(self, *keys):
        self.watched = keys

    async def get(self, key):
        return self.values.get(key)

    async def ttl(self, key):
        return 42 if key in self.values else -2

    def multi(self):
        self.in_multi = True

    def delete(self, *keys):
        self.queued.append(("delete",) + keys)

    def incr(self, key):
        self.queued.append(("incr", key))

    def expire(self, key, seconds):
        self.queued.append(("expire", key, seconds))

    async def execute(self):
        if self.abort:
            raise WatchError("Watched variable changed.")
        return [1] * len(self.queued)


class FakeRedis:
    """Minimal async Redis client double."""

    def __init__(self, values=None, pipeline=None, ping_error=None):
        self.values = values or {}
        self._pipeline = pipeline
        self.ping_error = ping_error
        self.set_calls = []
        self.closed = False

    async def set(self, key, value, ex=None, nx=False):
        self.set_calls.append((key, value, ex, nx))
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    async def get(self, key):
        return self.values.get(key)

    async def delete(self, *keys):
        return sum(1 for key in keys if self.values.pop(key, None) is not None)

    async def incr(self, key):
        self.values[key] = int(self.values.get(key, 0)) + 1
        return self.values[key]

    def pipeline(self, transaction=True):
        return self._pipeline

    async def ping(self):
        if self.ping_error:
            raise self.ping_error
        return True

    async def aclose(self):
        self.closed = True


class TestRedisStore:
    """Tests for the redis-py adapter."""

    @pytest.mark.asyncio
    async def test_set_nx_maps_none_to_false(self):
        """redis-py returns None when SET NX does not write."""
        from canviet_otp.store import RedisStore

        client = FakeRedis(values={"k": "existing"})
        store = RedisStore(client)

        assert await store.set("k", "v", ttl=60, nx=True) is False
        assert await store.set("other", "v", ttl=60, nx=True) is True
        assert client.set_calls[-1] == ("other", "v", 60, True)

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self):
        from canviet_otp.store import RedisStore

        store = RedisStore(FakeRedis(values={"k": b"value"}))

        assert await store.get("k") == "value"
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_without_keys(self):
        from canviet_otp.store import RedisStore

        assert await RedisStore(FakeRedis()).delete() == 0

    @pytest.mark.asyncio
    async def test_watch_executes_transaction(self):
        from canviet_otp.store import RedisStore

        pipe = FakePipeline({"a": b"1"})
        store = RedisStore(FakeRedis(pipeline=pipe))

        async with store.watch("a", "a:attempts") as tx:
            assert await tx.get("a") == "1"
            assert await tx.ttl("a") == 42
            tx.multi()
            tx.incr("a:attempts")
            tx.expire("a:attempts", 42)
            results = await tx.execute()

        assert pipe.watched == ("a", "a:attempts")
        assert pipe.in_multi is True
        assert pipe.queued == [("incr", "a:attempts"), ("expire", "a:attempts", 42)]
        assert results == [1, 1]
        assert pipe.reset is True

    @pytest.mark.asyncio
    async def test_watch_error_becomes_none(self):
        """An aborted EXEC is reported as None, not raised."""
        from canviet_otp.store import RedisStore

        store = RedisStore(FakeRedis(pipeline=FakePipeline({}, abort=True)))

        async with store.watch("a") as tx:
            tx.multi()
            tx.delete("a")
            results = await tx.execute()

        assert results is None

    @pytest.mark.asyncio
    async def test_ping_failure_returns_false(self):
        from canviet_otp.store import RedisStore

        store = RedisStore(FakeRedis(ping_error=RedisConnectionError("refused")))

        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_close_only_owned_client(self):
        from canviet_otp.store import RedisStore

        borrowed = FakeRedis()
        await RedisStore(borrowed).close()
        assert borrowed.closed is False

        owned = FakeRedis()
        await RedisStore(owned, owns_client=True).close()
        assert owned.closed is True

    def test_from_url_owns_client(self):
        """from_url builds a lazily connecting client the store owns."""
        from canviet_otp.store import RedisStore

        store = RedisStore.from_url("redis://localhost:6379/0")

        assert store._owns_client is True
        assert store.name == "redis"
