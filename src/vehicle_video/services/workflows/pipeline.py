import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from vehicle_video.services.task_store import TaskStatus, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Shared context passed between workflow steps"""
    task_id: str
    item_id: str
    auth_token: str
    country: str = "it"
    prompt: Optional[str] = None
    style: Optional[str] = None
    duration: Any = None
    ratio: Any = None
    vehicle: Optional[Dict[str, Any]] = None
    images: List[str] = field(default_factory=list)
    provider_job_id: Optional[str] = None
    original_video_url: Optional[str] = None
    video_url: Optional[str] = None
    item_updated: bool = False


class WorkflowStep(ABC):
    """Base class for workflow steps"""

    def __init__(self, task_store):
        self.task_store = task_store

    @abstractmethod
    async def execute(self, context: StepContext) -> StepContext:
        """Execute the step and return updated context"""
        pass


class WorkflowPipeline:
    """
    Orchestrates execution of workflow steps.

    Any exception raised by a step ends the run: the task is marked failed
    with the exception message and no later step runs. Whatever the outcome,
    the finished task is written to history exactly once. execute() never
    raises, since nobody awaits the background task that runs it.
    """
    def __init__(self, steps: List[WorkflowStep], task_store, history=None):
        self.steps = steps
        self.task_store = task_store
        self.history = history

    async def execute(self, context: StepContext) -> StepContext:
        """Execute all steps in sequence"""
        try:
            for step in self.steps:
                context = await step.execute(context)
        except Exception as e:
            logger.error(f"[{context.task_id}] {type(e).__name__} in video workflow: {e}")
            await self._mark_failed(context, e)

        await self._record_history(context)
        return context

    async def _mark_failed(self, context: StepContext, error: Exception) -> None:
        try:
            await self.task_store.update_task(
                context.task_id,
                status=TaskStatus.FAILED,
                error=str(error) or type(error).__name__
            )
        except Exception:
            logger.exception(f"[{context.task_id}] Could not mark task as failed")

    async def _record_history(self, context: StepContext) -> None:
        if self.history is None:
            return
        try:
            task = await self.task_store.get_task(context.task_id)
        except Exception:
            logger.exception(f"[{context.task_id}] Could not load task for history")
            return
        if task is None or TaskStatus(task["status"]) not in TERMINAL_STATUSES:
            logger.warning(f"[{context.task_id}] Task missing or unfinished, history not written")
            return
        try:
            await self.history.record(task)
        except Exception:
            logger.exception(f"[{context.task_id}] Could not record task history")
