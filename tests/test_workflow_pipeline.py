from unittest.mock import AsyncMock

import pytest

from vehicle_video.services.workflows.pipeline import WorkflowPipeline, WorkflowStep, StepContext
from vehicle_video.services.task_store import TaskStatus


class RecordingStep(WorkflowStep):
    def __init__(self, task_store, label, recorder):
        super().__init__(task_store)
        self.label = label
        self.recorder = recorder

    async def execute(self, context: StepContext) -> StepContext:
        self.recorder.append(self.label)
        return context


class FailingStep(WorkflowStep):
    async def execute(self, context: StepContext) -> StepContext:
        raise RuntimeError("boom")


def make_context(task_id="task-123"):
    return StepContext(task_id=task_id, item_id="V1", auth_token="Bearer t")


@pytest.mark.asyncio
async def test_pipeline_executes_steps_in_order():
    recorder: list[str] = []
    task_store = AsyncMock()
    task_store.get_task.return_value = {"id": "task-123", "status": "completed"}
    history = AsyncMock()

    steps = [
        RecordingStep(task_store, "step-1", recorder),
        RecordingStep(task_store, "step-2", recorder),
    ]
    pipeline = WorkflowPipeline(steps, task_store, history)

    context = make_context()
    result = await pipeline.execute(context)

    # Step execution order is correct
    assert recorder == ["step-1", "step-2"]
    # StepContext passed through correctly
    assert result is context
    # Update task only called by WorkflowPipeline if Step execution fails
    task_store.update_task.assert_not_called()
    history.record.assert_awaited_once_with({"id": "task-123", "status": "completed"})


@pytest.mark.asyncio
async def test_pipeline_marks_task_failed_on_exception():
    recorder: list[str] = []
    task_store = AsyncMock()
    task_store.get_task.return_value = {"id": "task-999", "status": "failed"}
    history = AsyncMock()
    steps = [FailingStep(task_store), RecordingStep(task_store, "after", recorder)]
    pipeline = WorkflowPipeline(steps, task_store, history)
    context = make_context("task-999")

    # The failure is recorded on the task instead of escaping the background run
    result = await pipeline.execute(context)

    assert result is context
    assert recorder == []
    task_store.update_task.assert_awaited_once_with(
        context.task_id, status=TaskStatus.FAILED, error="boom"
    )
    history.record.assert_awaited_once()


@pytest.mark.asyncio
async def test_pipeline_skips_history_for_unfinished_task():
    task_store = AsyncMock()
    task_store.get_task.return_value = {"id": "task-1", "status": "processing"}
    history = AsyncMock()
    pipeline = WorkflowPipeline([], task_store, history)

    await pipeline.execute(make_context("task-1"))

    history.record.assert_not_called()


@pytest.mark.asyncio
async def test_pipeline_survives_failed_status_write():
    task_store = AsyncMock()
    task_store.update_task.side_effect = KeyError("task-2")
    task_store.get_task.return_value = None
    history = AsyncMock()
    pipeline = WorkflowPipeline([FailingStep(task_store)], task_store, history)

    await pipeline.execute(make_context("task-2"))

    history.record.assert_not_called()
