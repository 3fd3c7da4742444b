import asyncio
import logging
from datetime import timedelta
from typing import Optional

from vehicle_video.services.task_store import TaskStore
from vehicle_video.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Periodically evicts live tasks older than the retention window. History is never touched."""

    def __init__(
        self,
        task_store: TaskStore,
        retention_hours: int = 24,
        interval_seconds: float = 3600,
        clock: Optional[Clock] = None,
    ):
        self.task_store = task_store
        self.retention = timedelta(hours=retention_hours)
        self.interval_seconds = interval_seconds
        self.clock = clock or SystemClock()
        self._handle: Optional[asyncio.Task] = None

    async def sweep(self) -> int:
        """Evict every task created before now - retention. Returns the number removed."""
        cutoff = self.clock.now() - self.retention
        removed = await self.task_store.evict_older_than(cutoff)
        if removed:
            logger.info(f"Cleanup: removed {removed} tasks created before {cutoff.isoformat()}")
        return removed

    async def _run(self) -> None:
        while True:
            await self.clock.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Task cleanup sweep failed")

    def start(self) -> None:
        if self._handle is not None and not self._handle.done():
            return
        self._handle = asyncio.create_task(self._run())
        logger.info(
            f"Task cleanup scheduled every {self.interval_seconds / 60:g} minutes "
            f"(retention {self.retention.total_seconds() / 3600:g} hours)"
        )

    async def stop(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        try:
            await self._handle
        except asyncio.CancelledError:
            pass
        self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.done()
