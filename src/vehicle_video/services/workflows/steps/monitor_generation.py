import logging

from vehicle_video.services.errors import (
    ProviderJobFailedError,
    ProviderTimeoutError,
    VideoUrlExtractionError,
)
from vehicle_video.services.retry import RetryPolicy
from vehicle_video.services.runway_client import GenerationStatus, JobState
from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext
from vehicle_video.utils.clock import Clock

logger = logging.getLogger(__name__)


class JobStillPending(Exception):
    """A poll saw a non-terminal provider status; the next attempt polls again."""


class MonitorGenerationStep(WorkflowStep):
    """
    Step: Poll the provider job until it succeeds, fails or the attempt budget runs out.

    Polling runs on a constant-interval RetryPolicy: a pending status and a
    failed poll call are both retried and both use up an attempt. The first
    poll also waits one interval, so the worst case is max_attempts * poll_interval.
    """

    def __init__(
        self,
        task_store,
        provider_client,
        clock: Clock,
        max_attempts: int = 60,
        poll_interval: float = 10
    ):
        super().__init__(task_store)
        self.provider_client = provider_client
        self.clock = clock
        self.max_attempts = max_attempts  # ~10 minutes with the default interval
        self.poll_interval = poll_interval
        self.poll_policy = RetryPolicy(
            max_attempts=max_attempts,
            base_delay=poll_interval,
            exponential_base=1.0,
            max_delay=poll_interval
        )

    async def execute(self, context: StepContext) -> StepContext:
        if not context.provider_job_id:
            raise ValueError("provider_job_id is required in context for monitoring")

        attempts = 0

        async def poll() -> GenerationStatus:
            nonlocal attempts
            attempts += 1
            status = await self.provider_client.get_job(context.provider_job_id)
            logger.info(
                f"[{context.task_id}] Poll {attempts}/{self.max_attempts}: provider status {status.raw_status}"
            )
            await self.task_store.update_task(
                context.task_id,
                provider_status=status.raw_status,
                last_checked_at=self.clock.now().isoformat()
            )
            if status.state is JobState.PENDING:
                raise JobStillPending(status.raw_status)
            return status

        def on_retry(exc: BaseException, attempt: int) -> None:
            if not isinstance(exc, JobStillPending):
                logger.warning(f"[{context.task_id}] Poll {attempt}/{self.max_attempts} failed: {exc}")

        await self.clock.sleep(self.poll_interval)
        try:
            status = await self.poll_policy.run(poll, clock=self.clock, on_retry=on_retry)
        except Exception as exc:
            raise ProviderTimeoutError(
                f"Video generation timed out after {self.max_attempts} polling attempts "
                f"({self.max_attempts * self.poll_interval:g} seconds)"
            ) from exc

        if status.state is JobState.FAILED:
            raise ProviderJobFailedError(f"Video generation failed: {status.failure}")

        if not status.video_url:
            raise VideoUrlExtractionError(
                f"Provider reported success but no video URL was found in its output: {status.output!r}"
            )
        context.original_video_url = status.video_url
        return context
