import asyncio
from unittest.mock import AsyncMock

import pytest

from vehicle_video.services.workflows.executor import WorkflowExecutor
from vehicle_video.services.workflows.pipeline import StepContext
from vehicle_video.services.task_store import TaskStatus
from vehicle_video.utils.config import Settings


def make_executor(task_store=None, **kwargs):
    return WorkflowExecutor(
        task_store=task_store if task_store is not None else AsyncMock(),
        history=AsyncMock(),
        vehicle_client=AsyncMock(),
        provider_client=AsyncMock(),
        url_shortener=AsyncMock(),
        settings=Settings(default_country="it"),
        **kwargs
    )


@pytest.mark.asyncio
async def test_start_workflow_async_dispatches_pipeline(monkeypatch):
    """
    Test that WorkflowExecutor properly...
     - Creates the task in the TaskStore and builds the StepContext
     - Returns before the pipeline has run
    By doing the following...
     - Register a test workflow that asserts the executor passes the expected dependencies.
     - Monkeypatch asyncio.create_task so the scheduled coroutine is captured and awaited.

    Notes:
        start_workflow_async schedules the pipeline with asyncio.create_task. The
        test captures the coroutine instead and awaits it explicitly, so that
        assertions that depend on the pipeline run only after it completes.
    """

    task_store = AsyncMock()
    task_store.create_task.return_value = "1700000000000000000"
    executor = make_executor(task_store)

    captured_context: dict[str, StepContext] = {}

    class DummyPipeline:
        """A simulated WorkflowPipeline that logs the StepContext it receives"""
        async def execute(self, context: StepContext):
            captured_context["context"] = context
            return context

    def workflow_factory(task_store_param, history_param, **deps):
        assert task_store_param is task_store
        assert history_param is executor.history
        assert deps["vehicle_client"] is executor.vehicle_client
        assert deps["provider_client"] is executor.provider_client
        assert deps["url_shortener"] is executor.url_shortener
        return DummyPipeline()

    executor.workflows = {"custom": workflow_factory}

    scheduled = {}
    loop = asyncio.get_running_loop()

    def fake_create_task(coro):
        scheduled["coro"] = coro
        return loop.create_future()

    monkeypatch.setattr(asyncio, "create_task", fake_create_task)

    task_id = await executor.start_workflow_async(
        "custom",
        item_id="V1",
        auth_token="Bearer t",
        country="de",
        style="cinematic",
        duration=10,
    )

    # Nothing has run yet: the caller only gets the task id back
    assert "context" not in captured_context
    assert task_id == "1700000000000000000"
    assert executor.running_count == 1

    await scheduled["coro"]

    args, kwargs = task_store.create_task.await_args
    assert args == ()
    assert kwargs == {"item_id": "V1", "options": {"style": "cinematic", "duration": 10}}

    context = captured_context["context"]
    assert isinstance(context, StepContext)
    assert context.task_id == task_id
    assert context.item_id == "V1"
    assert context.auth_token == "Bearer t"
    assert context.country == "de"
    assert context.duration == 10
    assert context.prompt is None


@pytest.mark.asyncio
async def test_start_workflow_async_defaults_country_and_tracks_handle(store):
    executor = make_executor(store)
    seen = {}

    class DummyPipeline:
        async def execute(self, context: StepContext):
            seen["country"] = context.country
            return context

    executor.workflows = {"custom": lambda *args, **kwargs: DummyPipeline()}

    task_id = await executor.start_workflow_async("custom", item_id="V1", auth_token="Bearer t")

    task = await store.get_task(task_id)
    assert task["status"] == TaskStatus.PROCESSING.value

    await executor.wait_for_running()
    assert seen["country"] == "it"
    assert executor.running_count == 0


@pytest.mark.asyncio
async def test_start_workflow_async_unknown_type():
    executor = make_executor()
    with pytest.raises(ValueError):
        await executor.start_workflow_async("does-not-exist", item_id="V1", auth_token="Bearer t")


@pytest.mark.asyncio
@pytest.mark.parametrize("item_id, auth_token", [("", "Bearer t"), ("  ", "Bearer t"), ("V1", None), ("V1", "")])
async def test_start_workflow_async_rejects_invalid_request(item_id, auth_token):
    task_store = AsyncMock()
    executor = make_executor(task_store)

    with pytest.raises(ValueError):
        await executor.start_workflow_async("generate_vehicle_video", item_id=item_id, auth_token=auth_token)

    # Validation errors never create a task
    task_store.create_task.assert_not_called()
