"""
To launch:
uvicorn vehicle_video.app:app --reload
"""
from vehicle_video.utils import load_local_env

load_local_env()

import logging
import re
from contextlib import asynccontextmanager
from fastapi import FastAPI

from vehicle_video.routes import api_router
from vehicle_video.services.cleanup import CleanupScheduler
from vehicle_video.services.task_store import task_store
from vehicle_video.services.vehicle_client import vehicle_client
from vehicle_video.services.runway_client import runway_client
from vehicle_video.services.url_shortener import url_shortener
from vehicle_video.services.workflows.executor import workflow_executor
from vehicle_video.utils.config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

_STATUS_POLL_RE = re.compile(r"GET /vehicle/video/[^/\s?]+")


# Configure uvicorn access logger to filter task status polling
class StatusPollFilter(logging.Filter):
    def filter(self, record):
        # Clients poll the status endpoint every few seconds
        if hasattr(record, 'scope') and record.scope.get('path', '').startswith('/vehicle/video/'):
            return False
        if _STATUS_POLL_RE.search(str(record.getMessage())):
            return False
        return True


# Apply filter to uvicorn access logger
uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.addFilter(StatusPollFilter())


settings = get_settings()
cleanup_scheduler = CleanupScheduler(
    task_store,
    retention_hours=settings.task_retention_hours,
    interval_seconds=settings.cleanup_interval_seconds
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown"""
    # Startup
    if not runway_client.is_configured:
        logger.warning("RUNWAY_API_KEY is not set; video generation tasks will fail at submission")
    cleanup_scheduler.start()
    yield
    # Shutdown: stop the sweep, then cleanup connections
    await cleanup_scheduler.stop()
    if workflow_executor.running_count:
        logger.warning(f"Shutting down with {workflow_executor.running_count} video tasks still running")
    await task_store.close()
    await vehicle_client.close()
    await runway_client.close()
    await url_shortener.close()


app = FastAPI(
    title="Vehicle AI Videos API",
    description="Generates promotional videos for catalogued vehicles and tracks the generation tasks",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(api_router)
