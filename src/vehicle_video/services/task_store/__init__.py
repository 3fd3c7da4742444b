"""
Task store package entrypoint.

Provides factory for selecting the desired backend and exports the global
task_store instance for use throughout the application.
"""

from __future__ import annotations

from typing import Optional

from vehicle_video.utils.clock import Clock
from vehicle_video.utils.config import Settings, get_settings

from .base import TaskStatus, TaskStore, TERMINAL_STATUSES, to_status_view
from .memory_store import InMemoryTaskStore


__all__ = [
    "TaskStatus",
    "TaskStore",
    "TERMINAL_STATUSES",
    "InMemoryTaskStore",
    "create_task_store",
    "task_store",
    "task_store_factory",
    "to_status_view",
]


def create_task_store(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> TaskStore:
    """Instantiate the configured task store backend."""

    settings = settings or get_settings()
    backend = (settings.task_store_backend or "memory").strip().lower()

    if backend == "memory":
        return InMemoryTaskStore(clock=clock)

    if backend == "redis":
        try:
            from .redis_store import RedisTaskStore
        except ImportError as exc:
            raise ImportError(
                "Redis task store backend requested, but dependencies "
                "are missing. Install redis and ensure redis_store.py is available."
            ) from exc
        return RedisTaskStore(ttl_seconds=settings.task_retention_hours * 3600, clock=clock)

    raise ValueError(
        f"Unsupported TASK_STORE_BACKEND '{backend}'. "
        "Supported values: memory or redis"
    )


# Global task store instance used by default across the application.
task_store: TaskStore = create_task_store()


def task_store_factory() -> TaskStore:
    """
    Convenience callable compatible with dependency injection systems.

    Returns the module-level task_store by default, but can be overridden
    or swapped in tests.
    """

    return task_store
