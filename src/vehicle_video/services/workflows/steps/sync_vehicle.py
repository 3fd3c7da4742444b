import logging
from typing import Optional

from vehicle_video.services.retry import RetryPolicy
from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext
from vehicle_video.utils.clock import Clock

logger = logging.getLogger(__name__)


class SyncVehicleStep(WorkflowStep):
    """
    Step: Write the video URL back to the vehicle record.

    Retried with backoff; a sync that still fails leaves item_updated False
    but does not fail the task, since the video itself was generated.
    """

    def __init__(
        self,
        task_store,
        vehicle_client,
        clock: Clock,
        retry_policy: Optional[RetryPolicy] = None,
        field: str = "videoUrl"
    ):
        super().__init__(task_store)
        self.vehicle_client = vehicle_client
        self.clock = clock
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=3, base_delay=2.0)
        self.field = field

    async def execute(self, context: StepContext) -> StepContext:
        async def update():
            return await self.vehicle_client.update_field(
                context.item_id,
                self.field,
                context.video_url,
                auth_token=context.auth_token,
                country=context.country,
                create_missing=True
            )

        try:
            await self.retry_policy.run(update, clock=self.clock)
            context.item_updated = True
        except Exception as exc:
            logger.warning(
                f"[{context.task_id}] Vehicle {context.item_id} not updated after "
                f"{self.retry_policy.max_attempts} attempts: {exc}"
            )
            context.item_updated = False
        return context
