import asyncio
import logging
from typing import Any, Dict, Optional, Set

from vehicle_video.services.workflows.pipeline import StepContext
from vehicle_video.services.workflows.definitions import generate_vehicle_video
from vehicle_video.services.task_store import task_store
from vehicle_video.services.history import history_persister
from vehicle_video.services.vehicle_client import vehicle_client
from vehicle_video.services.runway_client import runway_client
from vehicle_video.services.url_shortener import url_shortener
from vehicle_video.utils.clock import Clock, SystemClock
from vehicle_video.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """
    Registry-based executor for launching workflows by name.

    Each run is an asyncio task kept in a tracked set until it finishes, so
    shutdown and tests can wait on in-flight work. Runs cannot be cancelled:
    a caller who wants another attempt creates a new task.
    """

    def __init__(
        self,
        task_store=task_store,
        history=history_persister,
        vehicle_client=vehicle_client,
        provider_client=runway_client,
        url_shortener=url_shortener,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None
    ):
        self.task_store = task_store
        self.history = history
        self.vehicle_client = vehicle_client
        self.provider_client = provider_client
        self.url_shortener = url_shortener
        self.clock = clock or SystemClock()
        self.settings = settings or get_settings()
        # Registry of available workflows - maps name to definition function
        self.workflows = {
            "generate_vehicle_video": generate_vehicle_video,
        }
        self._running: Set[asyncio.Task] = set()

    async def start_workflow_async(
        self,
        workflow_type: str,
        *,
        item_id: str,
        auth_token: Optional[str],
        country: Optional[str] = None,
        prompt: Optional[str] = None,
        style: Optional[str] = None,
        duration: Any = None,
        ratio: Any = None
    ) -> str:
        """
        Start a workflow by type name.

        Only validation and task creation happen here; the pipeline runs in
        the background.

        Args:
            workflow_type: Name of the workflow (e.g., "generate_vehicle_video")
            item_id: Vehicle to generate the video for
            auth_token: Caller's Authorization header, forwarded to the catalog API
            country: Catalog country scope (defaults to DEFAULT_COUNTRY)
            prompt, style, duration, ratio: Optional generation options

        Returns:
            Task ID for tracking progress

        Raises:
            ValueError: Unknown workflow type, missing vehicle id or missing auth.
        """
        if workflow_type not in self.workflows:
            raise ValueError(f"Unknown workflow type: {workflow_type}. Available: {list(self.workflows.keys())}")
        if item_id is None or not str(item_id).strip():
            raise ValueError("Vehicle ID is required")
        if not auth_token:
            raise ValueError("Authorization token is required")

        options: Dict[str, Any] = {
            key: value for key, value in (
                ("prompt", prompt),
                ("style", style),
                ("duration", duration),
                ("ratio", ratio),
            ) if value is not None
        }

        task_id = await self.task_store.create_task(item_id=str(item_id), options=options)

        context = StepContext(
            task_id=task_id,
            item_id=str(item_id),
            auth_token=auth_token,
            country=country or self.settings.default_country,
            prompt=prompt,
            style=style,
            duration=duration,
            ratio=ratio
        )

        workflow_func = self.workflows[workflow_type]
        pipeline = workflow_func(
            self.task_store,
            self.history,
            vehicle_client=self.vehicle_client,
            provider_client=self.provider_client,
            url_shortener=self.url_shortener,
            clock=self.clock,
            settings=self.settings
        )

        # Execute in background
        handle = asyncio.create_task(pipeline.execute(context))
        self._running.add(handle)
        handle.add_done_callback(self._on_done)

        logger.info(f"[{task_id}] Started {workflow_type} for vehicle {item_id}")
        return task_id

    def _on_done(self, handle: asyncio.Task) -> None:
        self._running.discard(handle)
        if handle.cancelled():
            return
        exc = handle.exception()
        if exc is not None:
            logger.error("Video workflow crashed", exc_info=exc)

    @property
    def running_count(self) -> int:
        return len(self._running)

    async def wait_for_running(self) -> None:
        """Wait until every workflow started so far has finished."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)


# Global workflow executor instance
workflow_executor = WorkflowExecutor()
