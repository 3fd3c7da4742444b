from vehicle_video.services.task_store import TaskStatus
from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext


class FinalizeStep(WorkflowStep):
    """Step: Mark the task completed with its video URLs and sync outcome"""

    async def execute(self, context: StepContext) -> StepContext:
        await self.task_store.update_task(
            context.task_id,
            status=TaskStatus.COMPLETED,
            video_url=context.video_url,
            original_video_url=context.original_video_url,
            item_updated=context.item_updated
        )
        return context
