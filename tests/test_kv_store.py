import asyncio
import os
import uuid

import pytest

from orderflow.database import create_engine_for, create_session_factory, init_db
from orderflow.services.kv_store import InMemoryKeyValueStore, RedisKeyValueStore, SqlKeyValueStore


@pytest.fixture(params=["memory", "sql", "redis"])
async def kv(request, tmp_path):
    if request.param == "memory":
        yield InMemoryKeyValueStore()
        return

    if request.param == "redis":
        redis_url = os.environ.get("TEST_REDIS_URL")
        if not redis_url:
            pytest.skip("TEST_REDIS_URL not set")
        namespace = f"orderflow-test-{uuid.uuid4().hex}"
        store = RedisKeyValueStore(redis_url, namespace=namespace)
        yield store
        client = store._get_client()
        keys = [key async for key in client.scan_iter(match=f"{namespace}:*")]
        if keys:
            await client.delete(*keys)
        await store.close()
        return

    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    await init_db(engine)
    yield SqlKeyValueStore(create_session_factory(engine))
    await engine.dispose()

class TestPointOperations:
    async def test_get_missing_key_returns_none(self, kv):
        assert await kv.get("order:missing") is None

    async def test_set_then_get(self, kv):
        await kv.set("order:1", {"id": "order:1", "status": "pending", "total": 110.0})
        assert await kv.get("order:1") == {"id": "order:1", "status": "pending", "total": 110.0}

    async def test_set_overwrites(self, kv):
        await kv.set("order:1", {"status": "pending"})
        await kv.set("order:1", {"status": "cancelled"})
        assert await kv.get("order:1") == {"status": "cancelled"}

    async def test_delete(self, kv):
        await kv.set("product:1", {"name": "Tea"})
        await kv.delete("product:1")
        assert await kv.get("product:1") is None

    async def test_delete_missing_key_is_noop(self, kv):
        await kv.delete("product:nope")

    async def test_returned_values_are_copies(self, kv):
        await kv.set("order:1", {"lineItems": [{"quantity": 1}]})
        value = await kv.get("order:1")
        value["lineItems"][0]["quantity"] = 99
        assert (await kv.get("order:1"))["lineItems"][0]["quantity"] == 1

    async def test_ping(self, kv):
        await kv.ping()


class TestScanByPrefix:
    async def test_only_matching_kind(self, kv):
        await kv.set("order:1", {"id": "order:1"})
        await kv.set("order:2", {"id": "order:2"})
        await kv.set("user:1", {"id": "user:1"})

        orders = await kv.scan_by_prefix("order:")
        assert sorted(o["id"] for o in orders) == ["order:1", "order:2"]

    async def test_empty(self, kv):
        assert await kv.scan_by_prefix("bug:") == []

    async def test_wildcard_characters_are_literal(self, kv):
        await kv.set("a_b:1", {"id": "a_b:1"})
        await kv.set("axb:1", {"id": "axb:1"})
        await kv.set("a%b:1", {"id": "a%b:1"})

        assert [v["id"] for v in await kv.scan_by_prefix("a_b:")] == ["a_b:1"]
        assert [v["id"] for v in await kv.scan_by_prefix("a%b:")] == ["a%b:1"]


class TestCompareAndSet:
    async def test_succeeds_when_expected_matches(self, kv):
        await kv.set("order:1", {"status": "pending"})
        won = await kv.compare_and_set("order:1", {"status": "pending"}, {"status": "on_the_way"})
        assert won is True
        assert await kv.get("order:1") == {"status": "on_the_way"}

    async def test_fails_when_expected_differs(self, kv):
        await kv.set("order:1", {"status": "cancelled"})
        won = await kv.compare_and_set("order:1", {"status": "pending"}, {"status": "on_the_way"})
        assert won is False
        assert await kv.get("order:1") == {"status": "cancelled"}

    async def test_fails_for_missing_key(self, kv):
        won = await kv.compare_and_set("order:ghost", {"status": "pending"}, {"status": "on_the_way"})
        assert won is False
        assert await kv.get("order:ghost") is None

    async def test_all_expected_fields_must_match(self, kv):
        await kv.set("order:1", {"status": "pending", "purchaserId": "p1"})
        assert not await kv.compare_and_set(
            "order:1", {"status": "pending", "purchaserId": "p2"}, {"status": "x"}
        )
        assert await kv.compare_and_set(
            "order:1", {"status": "pending", "purchaserId": "p1"}, {"status": "x"}
        )

    async def test_integer_field_guard(self, kv):
        await kv.set("order:1", {"status": "on_the_way", "otpAttempts": 2})

        assert not await kv.compare_and_set(
            "order:1", {"status": "on_the_way", "otpAttempts": 1}, {"otpAttempts": 2}
        )
        assert await kv.compare_and_set(
            "order:1", {"status": "on_the_way", "otpAttempts": 2}, {"status": "on_the_way", "otpAttempts": 3}
        )
        assert (await kv.get("order:1"))["otpAttempts"] == 3

    async def test_stale_counter_loses(self, kv):
        await kv.set("order:1", {"otpAttempts": 0})

        assert await kv.compare_and_set("order:1", {"otpAttempts": 0}, {"otpAttempts": 1})
        assert not await kv.compare_and_set("order:1", {"otpAttempts": 0}, {"otpAttempts": 1})
        assert (await kv.get("order:1"))["otpAttempts"] == 1


class TestConcurrency:
    async def test_one_winner_among_racing_writers(self, kv):
        await kv.set("order:1", {"status": "pending"})

        results = await asyncio.gather(*[
            kv.compare_and_set("order:1", {"status": "pending"}, {"status": "on_the_way", "agent": i})
            for i in range(20)
        ])

        assert results.count(True) == 1
        winner = results.index(True)
        assert (await kv.get("order:1"))["agent"] == winner

    async def test_racing_counter_increments_are_not_lost(self, kv):
        await kv.set("order:1", {"otpAttempts": 0})

        async def increment():
            while True:
                current = await kv.get("order:1")
                count = current["otpAttempts"]
                if await kv.compare_and_set("order:1", {"otpAttempts": count}, {"otpAttempts": count + 1}):
                    return

        await asyncio.gather(*[increment() for _ in range(10)])

        assert (await kv.get("order:1"))["otpAttempts"] == 10
