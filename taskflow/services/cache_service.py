"""Read-through query cache backed by Redis."""
import json
import logging
from typing import Any, Optional
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import RedisError

from taskflow.config import settings

logger = logging.getLogger(__name__)


def task_list_key(
    user_id: UUID,
    status: Optional[str],
    priority: Optional[str],
    search: Optional[str],
    page: int,
    limit: int,
) -> str:
    """Cache key of one task-list query of a user."""
    return f"tasks:user:{user_id}:{status}:{priority}:{search}:{page}:{limit}"


def task_list_pattern(user_id: UUID) -> str:
    """Pattern matching every cached task-list query of a user."""
    return f"tasks:user:{user_id}:*"


def comment_list_key(task_id: UUID, page: int, limit: int, include_activity: bool) -> str:
    return f"task:{task_id}:comments:{page}:{limit}:{int(include_activity)}"


def comment_list_pattern(task_id: UUID) -> str:
    return f"task:{task_id}:comments:*"


class TaskCache:
    """JSON cache with TTL and pattern invalidation.

    Errors talking to Redis are logged and reported as misses so the
    authoritative store is always the fallback.
    """

    def __init__(self, client: "redis.Redis", default_ttl: int = settings.CACHE_TTL_SECONDS):
        self.client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str = settings.REDIS_URL) -> "TaskCache":
        return cls(redis.from_url(url, decode_responses=True))

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(key)
        except RedisError:
            logger.exception("Redis GET failed for %s", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=ttl or self.default_ttl)
        except RedisError:
            logger.exception("Redis SET failed for %s", key)

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.client.delete(*keys)
        except RedisError:
            logger.exception("Redis DEL failed for %s", keys)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching ``pattern``; returns the number removed."""
        removed = 0
        try:
            batch = []
            async for key in self.client.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    removed += await self.client.delete(*batch)
                    batch = []
            if batch:
                removed += await self.client.delete(*batch)
        except RedisError:
            logger.exception("Redis pattern delete failed for %s", pattern)
        return removed

    async def invalidate_task_lists(self, *user_ids: UUID) -> None:
        for user_id in dict.fromkeys(u for u in user_ids if u is not None):
            await self.delete_pattern(task_list_pattern(user_id))

    async def invalidate_comments(self, task_id: UUID) -> None:
        await self.delete_pattern(comment_list_pattern(task_id))

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()
