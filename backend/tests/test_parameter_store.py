"""
Tests for the Redis-backed ParameterStore and its in-memory fallback.
"""
import asyncio

import pytest

from indicharts.services.cache.parameter_store import ParameterStore, param_key


class FakeRedis:
    """Minimal async stand-in for redis.asyncio.Redis (get/set/delete)."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("redis down")

    async def set(self, key, value):
        raise ConnectionError("redis down")

    async def delete(self, key):
        raise ConnectionError("redis down")


class TestKeys:

    def test_param_key(self):
        assert param_key("markets", "rsi", "period") == "markets_rsi_period"
        assert param_key("watchlist", "stoch", "d_period") == "watchlist_stoch_d_period"
        assert param_key("markets", "timeframe") == "markets_timeframe"


class TestMemoryFallback:

    def test_typed_round_trip(self, memory_store):
        async def main():
            await memory_store.set_int("markets_rsi_period", 21)
            await memory_store.set_float("markets_rsi_lower_level", 25.5)
            await memory_store.set_str("markets_timeframe", "1h")
            return (
                await memory_store.get_int("markets_rsi_period"),
                await memory_store.get_float("markets_rsi_lower_level"),
                await memory_store.get_str("markets_timeframe"),
            )

        assert asyncio.run(main()) == (21, 25.5, "1h")

    def test_defaults_when_absent(self, memory_store):
        async def main():
            return (
                await memory_store.get_int("missing", 14),
                await memory_store.get_float("missing"),
                await memory_store.get_str("missing", "15m"),
            )

        assert asyncio.run(main()) == (14, None, "15m")

    def test_unparseable_value_gives_default(self, memory_store):
        async def main():
            await memory_store.set_str("markets_rsi_period", "fourteen")
            return await memory_store.get_int("markets_rsi_period", 14)

        assert asyncio.run(main()) == 14

    @pytest.mark.parametrize("raw", ["inf", "-inf", "1e400", "nan"])
    def test_non_finite_value_gives_default(self, memory_store, raw):
        async def main():
            await memory_store.set_str("markets_rsi_period", raw)
            await memory_store.set_str("markets_rsi_lower_level", raw)
            return (
                await memory_store.get_int("markets_rsi_period", 14),
                await memory_store.get_float("markets_rsi_lower_level", 30.0),
            )

        assert asyncio.run(main()) == (14, 30.0)

    def test_last_write_wins(self, memory_store):
        async def main():
            await memory_store.set_int("k", 1)
            await memory_store.set_int("k", 2)
            return await memory_store.get_int("k")

        assert asyncio.run(main()) == 2

    def test_stores_are_isolated(self):
        async def main():
            a, b = ParameterStore(), ParameterStore()
            await a.set_int("k", 1)
            return await b.get_int("k")

        assert asyncio.run(main()) is None


class TestRedisBacked:

    def test_writes_go_to_redis(self):
        redis = FakeRedis()
        store = ParameterStore(redis_client=redis)

        async def main():
            await store.set_float("markets_williams_lower_level", -80.0)
            return await store.get_float("markets_williams_lower_level")

        assert asyncio.run(main()) == -80.0
        assert redis.data == {"param:markets_williams_lower_level": "-80.0"}

    def test_broken_redis_falls_back_to_memory(self):
        store = ParameterStore(redis_client=BrokenRedis())

        async def main():
            await store.set_int("markets_rsi_period", 9)
            value = await store.get_int("markets_rsi_period")
            await store.delete("markets_rsi_period")
            return value, await store.get_int("markets_rsi_period")

        assert asyncio.run(main()) == (9, None)
