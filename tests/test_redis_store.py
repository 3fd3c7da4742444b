import json
from datetime import timedelta

import pytest

from vehicle_video.services.errors import InvalidStatusTransitionError, TaskNotFoundError
from vehicle_video.services.task_store import TaskStatus
from vehicle_video.services.task_store.redis_store import RedisTaskStore


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the task store."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    async def set(self, key, value, ex=None, nx=False, keepttl=False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        elif not keepttl:
            self.ttls.pop(key, None)
        return True

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    async def scan_iter(self, match=None):
        prefix = (match or "*").rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def aclose(self):
        self.closed = True


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def redis_store(redis, clock):
    return RedisTaskStore(redis=redis, ttl_seconds=3600, clock=clock)


@pytest.mark.asyncio
async def test_create_and_get(redis_store, redis):
    task_id = await redis_store.create_task("V1", options={"style": "cinematic"})

    task = await redis_store.get_task(task_id)
    assert task["status"] == "processing"
    assert task["options"] == {"style": "cinematic"}
    assert redis.ttls[f"task:{task_id}"] == 3600


@pytest.mark.asyncio
async def test_create_skips_taken_id(redis_store, redis, monkeypatch):
    monkeypatch.setattr("vehicle_video.services.task_store.redis_store.time.time_ns", lambda: 1000)
    redis.data["task:1000"] = json.dumps({"id": "1000"})

    task_id = await redis_store.create_task("V1")

    assert task_id == "1001"
    assert json.loads(redis.data["task:1000"]) == {"id": "1000"}


@pytest.mark.asyncio
async def test_update_keeps_ttl_and_guards_transitions(redis_store, redis):
    task_id = await redis_store.create_task("V1")

    await redis_store.update_task(task_id, status=TaskStatus.PROCESSING_PROVIDER, provider_job_id="job-1")
    assert redis.ttls[f"task:{task_id}"] == 3600

    await redis_store.update_task(task_id, status=TaskStatus.FAILED, error="boom")
    with pytest.raises(InvalidStatusTransitionError):
        await redis_store.update_task(task_id, status=TaskStatus.COMPLETED)

    view = await redis_store.get_status_view(task_id)
    assert view["status"] == "failed"
    assert view["error"] == "boom"
    assert "videoUrl" not in view


@pytest.mark.asyncio
async def test_update_unknown_task(redis_store):
    with pytest.raises(TaskNotFoundError):
        await redis_store.update_task("nope", status=TaskStatus.FAILED)


@pytest.mark.asyncio
async def test_evict_older_than(redis_store, redis, clock):
    old_id = await redis_store.create_task("V-old")
    clock.advance(7200)
    new_id = await redis_store.create_task("V-new")
    redis.data["other:key"] = "untouched"

    removed = await redis_store.evict_older_than(clock.now() - timedelta(hours=1))

    assert removed == 1
    assert await redis_store.get_task(old_id) is None
    assert await redis_store.get_task(new_id) is not None
    assert redis.data["other:key"] == "untouched"


@pytest.mark.asyncio
async def test_close(redis_store, redis):
    await redis_store.close()
    assert redis.closed
    assert redis_store.redis is None


def test_missing_configuration_raises(monkeypatch):
    for name in ("REDIS_URL", "REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ValueError):
        RedisTaskStore()


def test_url_built_from_host_settings(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setenv("REDIS_HOST", "cache.local")
    monkeypatch.delenv("REDIS_PORT", raising=False)
    monkeypatch.setenv("REDIS_PASSWORD", "pw")

    assert RedisTaskStore().redis_url == "redis://:pw@cache.local:6379"
