"""
Durable history of finished video tasks.

One JSON file per task, grouped by the month the task was created:

    {base_dir}/2024-05/1715000000000000000.json

Entries are written once, with exclusive create, and never modified. The
cleanup sweep of the live task store never touches this directory.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from vehicle_video.services.task_store import TERMINAL_STATUSES, TaskStatus
from vehicle_video.utils.config import get_settings

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def build_history_entry(task: Dict[str, Any]) -> Dict[str, Any]:
    """Immutable snapshot of a finished task."""
    created_at = datetime.fromisoformat(task["created_at"])
    completed_at = datetime.fromisoformat(task["completed_at"]) if task.get("completed_at") else None
    processing_time = (
        round((completed_at - created_at).total_seconds(), 3) if completed_at else None
    )
    # Values sent to the provider; tasks that failed before submission only have the request
    options = task.get("generation") or task.get("options") or {}
    return {
        "taskId": task["id"],
        "itemId": task["item_id"],
        "status": task["status"],
        "createdAt": task["created_at"],
        "completedAt": task.get("completed_at"),
        "videoUrl": task.get("video_url"),
        "error": task.get("error"),
        "duration": options.get("duration"),
        "style": options.get("style"),
        "itemInfo": task.get("item_info"),
        "processingTimeSeconds": processing_time,
    }


def validate_month(month: str) -> str:
    if not _MONTH_RE.match(month):
        raise ValueError(f"Invalid month '{month}'. Expected format YYYY-MM.")
    return month


class HistoryPersister:
    """Append-only, month-partitioned store of history entries on the local filesystem."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    async def record(self, task: Dict[str, Any]) -> bool:
        """
        Write the history entry for a terminal task.

        Returns True when an entry was written and False when the task is not
        terminal, already has an entry, or the write failed. Errors are logged,
        never raised: history is for observability and must not change the
        task's outcome.
        """
        if TaskStatus(task["status"]) not in TERMINAL_STATUSES:
            logger.warning(f"[{task['id']}] Not recording history for non-terminal task ({task['status']})")
            return False
        try:
            entry = build_history_entry(task)
            return await asyncio.to_thread(self._write_entry, entry)
        except Exception:
            logger.exception(f"[{task['id']}] Failed to record task history")
            return False

    def _write_entry(self, entry: Dict[str, Any]) -> bool:
        partition = self.base_dir / entry["createdAt"][:7]
        partition.mkdir(parents=True, exist_ok=True)
        path = partition / f"{entry['taskId']}.json"
        try:
            with open(path, "x", encoding="utf-8") as f:
                json.dump(entry, f, ensure_ascii=False, indent=2)
        except FileExistsError:
            logger.info(f"[{entry['taskId']}] History entry already exists, leaving it unchanged")
            return False
        logger.info(f"[{entry['taskId']}] History entry written to {path}")
        return True

    async def query(
        self,
        *,
        item_id: Optional[str] = None,
        status: Optional[str] = None,
        month: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Newest-first history entries matching every given filter.

        Raises:
            ValueError: month is not YYYY-MM or limit is not positive.
        """
        if month is not None:
            validate_month(month)
        if limit is not None and limit <= 0:
            raise ValueError("limit must be a positive integer")
        return await asyncio.to_thread(self._scan, item_id, status, month, limit)

    def _partitions(self, month: Optional[str]) -> List[Path]:
        if not self.base_dir.exists():
            return []
        if month is not None:
            partition = self.base_dir / month
            return [partition] if partition.is_dir() else []
        return sorted(
            (p for p in self.base_dir.iterdir() if p.is_dir() and _MONTH_RE.match(p.name)),
            key=lambda p: p.name,
            reverse=True,
        )

    def _scan(
        self,
        item_id: Optional[str],
        status: Optional[str],
        month: Optional[str],
        limit: Optional[int],
    ) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        for partition in self._partitions(month):
            for path in partition.glob("*.json"):
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        entry = json.load(f)
                except (OSError, ValueError) as exc:
                    logger.warning(f"Skipping unreadable history entry {path}: {exc}")
                    continue
                if item_id is not None and entry.get("itemId") != item_id:
                    continue
                if status is not None and entry.get("status") != status:
                    continue
                results.append(entry)

        results.sort(key=lambda e: (e.get("createdAt") or "", e.get("taskId") or ""), reverse=True)
        if limit is not None:
            results = results[:limit]
        return results


history_persister = HistoryPersister(get_settings().history_dir)
