import logging

from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext

logger = logging.getLogger(__name__)


class ShortenUrlStep(WorkflowStep):
    """Step: Shorten the video URL. Best effort; falls back to the original URL"""

    def __init__(self, task_store, url_shortener):
        super().__init__(task_store)
        self.url_shortener = url_shortener

    async def execute(self, context: StepContext) -> StepContext:
        try:
            context.video_url = await self.url_shortener.shorten(
                context.original_video_url,
                log_id=context.task_id
            )
        except Exception as exc:
            logger.warning(f"[{context.task_id}] URL shortening failed, using original URL: {exc}")
            context.video_url = None
        context.video_url = context.video_url or context.original_video_url
        return context
