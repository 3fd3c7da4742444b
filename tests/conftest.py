import os

# Keep the module-level singletons on the in-memory backend and away from real services
os.environ.setdefault("TASK_STORE_BACKEND", "memory")
os.environ.setdefault("RUNWAY_API_KEY", "test-key")

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from vehicle_video.services.history import HistoryPersister
from vehicle_video.services.runway_client import GenerationStatus, JobState
from vehicle_video.services.task_store import InMemoryTaskStore
from vehicle_video.utils.clock import FakeClock
from vehicle_video.utils.config import Settings


VEHICLE = {
    "id": "V1",
    "brand": "Alfa Romeo",
    "model": "Giulia",
    "year": 2022,
    "exteriorColorName": "Rosso",
    "videoUrl": None,
}


def pending(raw: str = "RUNNING") -> GenerationStatus:
    return GenerationStatus(state=JobState.PENDING, raw_status=raw)


def succeeded(url: str = "https://provider/x.mp4") -> GenerationStatus:
    return GenerationStatus(
        state=JobState.SUCCEEDED,
        raw_status="SUCCEEDED",
        output={"url": url},
        video_url=url,
    )


def failed(message: str = "content moderation") -> GenerationStatus:
    return GenerationStatus(state=JobState.FAILED, raw_status="FAILED", failure=message)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return InMemoryTaskStore(clock=clock)


@pytest.fixture
def history(tmp_path):
    return HistoryPersister(tmp_path / "history")


@pytest.fixture
def settings():
    return Settings(poll_interval_seconds=10, poll_max_attempts=60, sync_max_attempts=3, sync_base_delay_seconds=2)


@pytest.fixture
def vehicle_client():
    client = AsyncMock()
    client.get_vehicle.return_value = dict(VEHICLE)
    client.get_gallery.return_value = [
        {"id": "img-1", "url": "https://img/1.jpg"},
        {"id": "img-2", "url": "https://img/2.jpg"},
    ]
    client.update_field.return_value = {"success": True}
    return client


@pytest.fixture
def provider_client():
    client = AsyncMock()
    client.create_image_to_video.return_value = "job-123"
    client.get_job.side_effect = [pending(), pending(), succeeded()]
    return client


@pytest.fixture
def url_shortener():
    shortener = AsyncMock()
    shortener.shorten.return_value = "https://s/abc"
    return shortener
