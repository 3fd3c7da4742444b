"""Redis-backed TaskStore implementation."""

from __future__ import annotations

import json
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, Optional

import redis.asyncio as aioredis

from vehicle_video.services.errors import TaskNotFoundError
from vehicle_video.utils.clock import Clock, SystemClock

from .base import TaskStore, apply_updates, new_task_record

logger = logging.getLogger(__name__)


class RedisTaskStore(TaskStore):
    """
    Redis-backed live task table, for running several API instances against one table.

    - Stores task payloads as JSON values with an expiration (TTL) matching the
      retention window, so Redis also expires records the sweep misses.
    - Supports both a single `REDIS_URL` and individual host/port/password environment variables.
    - Same contract and transition guard as InMemoryTaskStore.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 86400,
        clock: Optional[Clock] = None,
        redis: Optional[aioredis.Redis] = None,
    ):
        """
        Configure the Redis connection URL and TTL.

        Args:
            redis_url: Optional Redis URL. Falls back to env vars when omitted.
            ttl_seconds: Number of seconds before a task entry expires (default 24h).
            clock: Time source for created_at/completed_at.
            redis: Pre-built client, mainly for tests.
        """
        redis_url = redis_url or os.getenv("REDIS_URL")

        if not redis_url and redis is None:
            host = os.getenv("REDIS_HOST")
            port = os.getenv("REDIS_PORT")
            password = os.getenv("REDIS_PASSWORD")

            if host:
                port = port or "6379"  # Default Redis port
                if password:
                    redis_url = f"redis://:{password}@{host}:{port}"
                else:
                    redis_url = f"redis://{host}:{port}"
            else:
                raise ValueError(
                    "Redis configuration is missing. Set REDIS_URL or a combination of "
                    "(REDIS_HOST, REDIS_PORT and REDIS_PASSWORD)"
                )

        self.redis_url = redis_url
        self.redis: Optional[aioredis.Redis] = redis
        self.clock = clock or SystemClock()
        self.task_prefix = "task:"
        self.ttl_seconds = ttl_seconds

    async def _get_redis(self) -> aioredis.Redis:
        """Get or lazily create the shared Redis connection with basic connectivity checks."""
        if self.redis is None:
            try:
                self.redis = aioredis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=10,
                )
                await self.redis.ping()
            except Exception as exc:  # pragma: no cover - network errors are runtime concerns
                self.redis = None
                raise ConnectionError(
                    f"Failed to connect to Redis at {self.redis_url}. "
                    f"Error: {str(exc)}. "
                    "Make sure Redis is running or REDIS_URL "
                    "(or REDIS_HOST/REDIS_PORT/REDIS_PASSWORD) is set correctly."
                ) from exc
        return self.redis

    def _key(self, task_id: str) -> str:
        return f"{self.task_prefix}{task_id}"

    async def create_task(
        self,
        item_id: str,
        item_snapshot: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        redis = await self._get_redis()
        candidate = time.time_ns()
        while True:
            task_id = str(candidate)
            task = new_task_record(task_id, item_id, item_snapshot, options, self.clock.now())
            # NX: another instance may have taken the same nanosecond id
            if await redis.set(self._key(task_id), json.dumps(task), ex=self.ttl_seconds, nx=True):
                break
            candidate += 1
        logger.info(f"[{task_id}] Created task for vehicle {item_id}")
        return task_id

    async def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        redis = await self._get_redis()
        data = await redis.get(self._key(task_id))
        if data:
            return json.loads(data)
        return None

    async def update_task(self, task_id: str, **updates) -> Dict[str, Any]:
        task = await self.get_task(task_id)
        if not task:
            raise TaskNotFoundError(task_id)

        apply_updates(task, updates, self.clock.now())

        redis = await self._get_redis()
        # KEEPTTL: the retention window counts from creation, not from the last update
        await redis.set(self._key(task_id), json.dumps(task), keepttl=True)
        return task

    async def evict_older_than(self, cutoff: datetime) -> int:
        redis = await self._get_redis()
        removed = 0
        async for key in redis.scan_iter(match=f"{self.task_prefix}*"):
            data = await redis.get(key)
            if not data:
                continue
            task = json.loads(data)
            if datetime.fromisoformat(task["created_at"]) < cutoff:
                await redis.delete(key)
                removed += 1
        return removed

    async def close(self) -> None:
        """Close the shared Redis connection (idempotent)."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
