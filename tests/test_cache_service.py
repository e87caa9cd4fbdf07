from unittest.mock import AsyncMock

from app.services.cache_service import MemoryCacheService, RedisCacheService


async def test_set_get_remove():
    cache = MemoryCacheService()

    await cache.set("Funko_1", {"id": 1})
    assert await cache.get("Funko_1") == {"id": 1}

    await cache.remove("Funko_1")
    assert await cache.get("Funko_1") is None


async def test_entries_expire():
    clock = [1000.0]
    cache = MemoryCacheService()
    cache._clock = lambda: clock[0]

    await cache.set("Funko_1", {"id": 1}, ttl_seconds=60)
    clock[0] += 59
    assert await cache.get("Funko_1") == {"id": 1}
    clock[0] += 2
    assert await cache.get("Funko_1") is None


async def test_remove_by_pattern():
    cache = MemoryCacheService()
    await cache.set("Funko_1", 1)
    await cache.set("Funko_2", 2)
    await cache.set("Categoria_dc", 3)

    removed = await cache.remove_by_pattern("Funko_*")

    assert removed == 2
    assert await cache.get("Categoria_dc") == 3


async def test_least_recently_used_entry_is_evicted():
    cache = MemoryCacheService(capacity=2)
    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.get("a")
    await cache.set("c", 3)

    assert await cache.get("b") is None
    assert await cache.get("a") == 1


async def test_redis_cache_prefixes_keys_and_serializes_json():
    client = AsyncMock()
    client.get.return_value = '{"id": 1}'
    cache = RedisCacheService("redis://unused", instance_name="FunkoApi:", default_ttl=30, client=client)

    await cache.set("Funko_1", {"id": 1})
    value = await cache.get("Funko_1")
    await cache.remove("Funko_1")

    client.set.assert_awaited_once_with("FunkoApi:Funko_1", '{"id": 1}', ex=30)
    client.get.assert_awaited_once_with("FunkoApi:Funko_1")
    client.delete.assert_awaited_once_with("FunkoApi:Funko_1")
    assert value == {"id": 1}
