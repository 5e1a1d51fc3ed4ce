"""
Cache store tests against an in-memory Redis stand-in
"""
import pytest

from app.core.cache import (
    NullCacheStore,
    RedisCacheStore,
    build_cache_store,
    escape_glob,
)
from app.core.config import Settings


class TestRedisCacheStore:
    """JSON values, TTLs and prefix deletes"""

    async def test_set_then_get(self, cache, fake_redis):
        value = [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}]

        assert await cache.set("tb:tasks:list:all", value, 60) is True

        assert await cache.get("tb:tasks:list:all") == value
        assert fake_redis.ttls["tb:tasks:list:all"] == 60

    async def test_missing_key_is_none(self, cache):
        assert await cache.get("tb:task:404") is None

    async def test_empty_list_is_a_value(self, cache):
        await cache.set("tb:tasks:list:status=done", [], 60)

        assert await cache.get("tb:tasks:list:status=done") == []

    async def test_delete(self, cache, fake_redis):
        await cache.set("tb:task:1", {"id": 1}, 300)

        assert await cache.delete("tb:task:1") is True
        assert "tb:task:1" not in fake_redis.store

    async def test_delete_by_prefix_only_touches_prefix(self, cache, fake_redis):
        await cache.set("tb:tasks:list:all", [], 60)
        await cache.set("tb:tasks:page:1:limit:20:all", {"tasks": []}, 60)
        await cache.set("tb:task:1", {"id": 1}, 300)
        await cache.set("other:tasks:list:all", [], 60)

        assert await cache.delete_by_prefix("tb:tasks:") is True

        assert sorted(fake_redis.store) == ["other:tasks:list:all", "tb:task:1"]

    async def test_delete_by_prefix_batches(self, cache, fake_redis, monkeypatch):
        monkeypatch.setattr("app.core.cache.SCAN_BATCH_SIZE", 2)
        for page in range(5):
            await cache.set(f"tb:tasks:page:{page}:limit:20:all", {"tasks": []}, 60)

        assert await cache.delete_by_prefix("tb:tasks:") is True

        assert fake_redis.keys_with_prefix("tb:tasks:") == []

    async def test_undecodable_entry_is_miss(self, cache, fake_redis):
        fake_redis.store["tb:task:9"] = "{not json"

        assert await cache.get("tb:task:9") is None

    async def test_unserializable_value_not_stored(self, cache, fake_redis):
        assert await cache.set("tb:task:1", {"when": object()}, 300) is False
        assert fake_redis.store == {}

    async def test_ping_and_close(self, cache, fake_redis):
        assert await cache.ping() is True

        await cache.close()

        assert fake_redis.closed is True


class TestDegradedRedis:
    """Transport failures never escape the store"""

    async def test_failures_degrade(self, cache, fake_redis):
        fake_redis.fail = True

        assert await cache.get("tb:task:1") is None
        assert await cache.set("tb:task:1", {"id": 1}, 300) is False
        assert await cache.delete("tb:task:1") is False
        assert await cache.delete_by_prefix("tb:tasks:") is False
        assert await cache.ping() is False

    async def test_timeout_degrades(self, fake_redis, monkeypatch):
        async def slow_get(key):
            raise TimeoutError("timed out")

        monkeypatch.setattr(fake_redis, "get", slow_get)

        assert await RedisCacheStore(fake_redis).get("tb:task:1") is None


class TestNullCacheStore:
    """Disabled cache: always a miss"""

    async def test_null_store(self):
        store = NullCacheStore()

        assert store.enabled is False
        assert await store.set("k", {"a": 1}, 10) is False
        assert await store.get("k") is None
        assert await store.delete("k") is False
        assert await store.delete_by_prefix("k") is False
        assert await store.ping() is False
        await store.close()


class TestBuildCacheStore:
    """Cache tier selection from configuration"""

    async def test_disabled_builds_null_store(self):
        config = Settings(DATABASE_URL="sqlite+aiosqlite://", CACHE_ENABLED=False)

        assert isinstance(build_cache_store(config), NullCacheStore)

    async def test_enabled_builds_redis_store(self):
        config = Settings(
            DATABASE_URL="sqlite+aiosqlite://",
            CACHE_ENABLED=True,
            REDIS_URL="redis://localhost:6390/3",
        )

        store = build_cache_store(config)

        assert isinstance(store, RedisCacheStore)
        assert store.enabled is True
        await store.close()


async def test_escape_glob():
    assert escape_glob("tb:tasks:") == "tb:tasks:"
    assert escape_glob("a*b?[c]") == "a\\*b\\?\\[c\\]"
