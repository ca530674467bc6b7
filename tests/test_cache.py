"""Tests for the Redis-backed query cache."""
from uuid import uuid4

import pytest

from taskflow.services.cache_service import TaskCache, comment_list_key, task_list_key
from tests.fakes import BrokenRedis, FakeRedis


@pytest.mark.asyncio
async def test_set_and_get_json_with_ttl():
    redis = FakeRedis()
    cache = TaskCache(redis, default_ttl=300)

    await cache.set_json("k", {"a": 1})

    assert await cache.get_json("k") == {"a": 1}
    assert redis.ttls["k"] == 300


@pytest.mark.asyncio
async def test_invalidate_task_lists_only_touches_given_users():
    cache = TaskCache(FakeRedis())
    alice, bob = uuid4(), uuid4()
    alice_key = task_list_key(alice, None, None, None, 1, 20)
    alice_filtered = task_list_key(alice, "todo", "high", "bug", 2, 10)
    bob_key = task_list_key(bob, None, None, None, 1, 20)
    for key in (alice_key, alice_filtered, bob_key):
        await cache.set_json(key, {"tasks": []})

    await cache.invalidate_task_lists(alice)

    assert await cache.get_json(alice_key) is None
    assert await cache.get_json(alice_filtered) is None
    assert await cache.get_json(bob_key) == {"tasks": []}


@pytest.mark.asyncio
async def test_invalidate_comments_for_one_task():
    cache = TaskCache(FakeRedis())
    task_a, task_b = uuid4(), uuid4()
    await cache.set_json(comment_list_key(task_a, 1, 50, False), [1])
    await cache.set_json(comment_list_key(task_a, 1, 50, True), [2])
    await cache.set_json(comment_list_key(task_b, 1, 50, False), [3])

    await cache.invalidate_comments(task_a)

    assert await cache.get_json(comment_list_key(task_a, 1, 50, False)) is None
    assert await cache.get_json(comment_list_key(task_a, 1, 50, True)) is None
    assert await cache.get_json(comment_list_key(task_b, 1, 50, False)) == [3]


@pytest.mark.asyncio
async def test_redis_errors_are_reported_as_misses():
    cache = TaskCache(BrokenRedis())

    await cache.set_json("k", {"a": 1})
    assert await cache.get_json("k") is None
    assert await cache.delete_pattern("*") == 0
    await cache.invalidate_task_lists(uuid4())


@pytest.mark.asyncio
async def test_undecodable_entry_is_a_miss():
    redis = FakeRedis()
    redis.store["k"] = "{not json"

    assert await TaskCache(redis).get_json("k") is None
