import httpx

from vehicle_video.services.errors import ProviderSubmissionError
from vehicle_video.services.runway_client import clamp_duration, clamp_ratio
from vehicle_video.services.task_store import TaskStatus
from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext
from vehicle_video.services.workflows.steps.compose_prompt import DEFAULT_STYLE


class SubmitGenerationStep(WorkflowStep):
    """
    Step: Submit the image-to-video job. Two or more photos use first/last frame interpolation.

    The style, duration and ratio actually sent are stored on the task under
    `generation`; a None duration or ratio means the provider's own default.
    """

    def __init__(self, task_store, provider_client):
        super().__init__(task_store)
        self.provider_client = provider_client

    async def execute(self, context: StepContext) -> StepContext:
        generation = {
            "style": context.style or DEFAULT_STYLE,
            "duration": clamp_duration(context.duration, context.task_id),
            "ratio": clamp_ratio(context.ratio, context.task_id),
        }

        try:
            job_id = await self.provider_client.create_image_to_video(
                context.prompt,
                context.images[:2],
                log_id=context.task_id,
                **generation
            )
        except httpx.HTTPError as exc:
            raise ProviderSubmissionError(f"Provider rejected the generation job: {exc}") from exc

        context.provider_job_id = job_id
        context.style = generation["style"]
        context.duration = generation["duration"]
        context.ratio = generation["ratio"]

        await self.task_store.update_task(
            context.task_id,
            status=TaskStatus.PROCESSING_PROVIDER,
            provider_job_id=job_id,
            generation=generation
        )
        return context
