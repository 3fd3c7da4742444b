"""In-memory TaskStore implementation (default backend)."""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from vehicle_video.services.errors import TaskNotFoundError
from vehicle_video.utils.clock import Clock, SystemClock

from .base import TaskStore, apply_updates, new_task_record

logger = logging.getLogger(__name__)


class InMemoryTaskStore(TaskStore):
    """
    Process-local task table.

    - Records live in a dict guarded by an asyncio.Lock; callers always get copies.
    - Task ids come from the nanosecond clock and are kept strictly increasing,
      so sorting ids sorts tasks by creation order.
    - Contents are lost on restart; the history persister keeps the durable copy.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._last_id = 0

    def _next_id(self) -> str:
        candidate = time.time_ns()
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    async def create_task(
        self,
        item_id: str,
        item_snapshot: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        async with self._lock:
            task_id = self._next_id()
            self._tasks[task_id] = new_task_record(
                task_id, item_id, item_snapshot, options, self.clock.now()
            )
        logger.info(f"[{task_id}] Created task for vehicle {item_id}")
        return task_id

    async def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        async with self._lock:
            task = self._tasks.get(task_id)
            return copy.deepcopy(task) if task is not None else None

    async def update_task(self, task_id: str, **updates) -> Dict[str, Any]:
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            apply_updates(task, updates, self.clock.now())
            logger.debug(f"[{task_id}] Updated task (status={task['status']})")
            return copy.deepcopy(task)

    async def evict_older_than(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [
                task_id for task_id, task in self._tasks.items()
                if datetime.fromisoformat(task["created_at"]) < cutoff
            ]
            for task_id in stale:
                del self._tasks[task_id]
        return len(stale)
