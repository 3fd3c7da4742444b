"""
Task store abstractions and shared types.

This module defines the core contract that any task store backend
must satisfy so that different backends (in-memory, Redis) can be used
interchangeably by the workflow and the routes.

Concurrency note: update_task merges fields last-writer-wins with no
compare-and-swap. Each task has exactly one writer, its own pipeline, so this
is safe today; a second concurrent writer to the same task would need a
versioned update first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from vehicle_video.services.errors import InvalidStatusTransitionError


class TaskStatus(str, Enum):
    """Enumeration of task lifecycle states."""

    PROCESSING = "processing"
    PROCESSING_PROVIDER = "processing_provider"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})

ALLOWED_TRANSITIONS = {
    TaskStatus.PROCESSING: {TaskStatus.PROCESSING, TaskStatus.PROCESSING_PROVIDER, TaskStatus.FAILED},
    TaskStatus.PROCESSING_PROVIDER: {TaskStatus.PROCESSING_PROVIDER, TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}


def _coerce_status(status: TaskStatus | str) -> TaskStatus:
    """Accept either the enum or its string value."""
    if isinstance(status, TaskStatus):
        return status
    return TaskStatus(str(status))


def new_task_record(
    task_id: str,
    item_id: str,
    item_snapshot: Optional[Dict[str, Any]],
    options: Optional[Dict[str, Any]],
    created_at: datetime,
) -> Dict[str, Any]:
    """Initial JSON-friendly shape of a task, shared by every backend."""
    return {
        "id": task_id,
        "item_id": item_id,
        "status": TaskStatus.PROCESSING.value,
        "created_at": created_at.isoformat(),
        "completed_at": None,
        "item_info": summarize_item(item_snapshot) if item_snapshot else None,
        "options": dict(options or {}),
        "generation": None,
        "provider_job_id": None,
        "provider_status": None,
        "last_checked_at": None,
        "video_url": None,
        "original_video_url": None,
        "item_updated": False,
        "error": None,
    }


def summarize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """The subset of a vehicle record kept on the task and in history."""
    return {
        "id": item.get("id"),
        "brand": item.get("brand"),
        "model": item.get("model"),
        "year": item.get("year"),
        "color": item.get("exteriorColorName") or item.get("color") or "Unknown",
    }


def apply_updates(task: Dict[str, Any], updates: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """
    Merge `updates` into `task` in place, enforcing the status state machine.

    Entering a terminal status stamps completed_at. Terminal tasks reject any
    further status change, and a provider job id cannot be replaced once set.
    """
    current = _coerce_status(task["status"])

    if "status" in updates:
        target = _coerce_status(updates["status"])
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(
                f"Task {task['id']}: cannot move from {current.value} to {target.value}"
            )
    else:
        target = current

    new_job_id = updates.get("provider_job_id")
    if new_job_id is not None and task.get("provider_job_id") not in (None, new_job_id):
        raise InvalidStatusTransitionError(
            f"Task {task['id']} is already bound to provider job {task['provider_job_id']}"
        )

    for key, value in updates.items():
        if key == "status":
            task["status"] = target.value
        elif key in ("id", "created_at", "completed_at"):
            continue
        else:
            task[key] = value

    if target.is_terminal and not current.is_terminal:
        task["completed_at"] = now.isoformat()
    return task


def to_status_view(task: Dict[str, Any]) -> Dict[str, Any]:
    """
    Caller-safe projection of a task.

    Video URLs are only exposed once the task completed; unset optional fields
    are omitted rather than returned as null.
    """
    completed = task["status"] == TaskStatus.COMPLETED.value
    view = {
        "taskId": task["id"],
        "itemId": task["item_id"],
        "status": task["status"],
        "createdAt": task["created_at"],
        "completedAt": task.get("completed_at"),
        "videoUrl": task.get("video_url") if completed else None,
        "originalVideoUrl": task.get("original_video_url") if completed else None,
        "providerJobId": task.get("provider_job_id"),
        "itemUpdated": bool(task.get("item_updated")),
        "error": task.get("error"),
    }
    return {key: value for key, value in view.items() if value is not None}


class TaskStore(ABC):
    """Abstract interface for live task backends."""

    @abstractmethod
    async def create_task(
        self,
        item_id: str,
        item_snapshot: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Allocate a new task in `processing` state and return its id."""

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a copy of a task record by ID."""

    @abstractmethod
    async def update_task(self, task_id: str, **updates) -> Dict[str, Any]:
        """Merge fields into a task record. Raises TaskNotFoundError for unknown ids."""

    @abstractmethod
    async def evict_older_than(self, cutoff: datetime) -> int:
        """Remove every task created before `cutoff`; return how many were removed."""

    async def get_status_view(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Public projection of a task, or None when unknown."""
        task = await self.get_task(task_id)
        if task is None:
            return None
        return to_status_view(task)

    async def close(self) -> None:
        """Release any underlying resources (connections, pools, etc.)."""
