from vehicle_video.services.errors import NoImagesAvailableError
from vehicle_video.services.task_store.base import summarize_item
from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext


class FetchVehicleStep(WorkflowStep):
    """Step: Load the vehicle record and its gallery. A vehicle without photos fails the task."""

    def __init__(self, task_store, vehicle_client):
        super().__init__(task_store)
        self.vehicle_client = vehicle_client

    async def execute(self, context: StepContext) -> StepContext:
        vehicle = await self.vehicle_client.get_vehicle(
            context.item_id,
            auth_token=context.auth_token,
            country=context.country
        )
        gallery = await self.vehicle_client.get_gallery(
            context.item_id,
            auth_token=context.auth_token,
            country=context.country
        )

        context.vehicle = vehicle
        context.images = [
            image["url"] for image in gallery
            if isinstance(image, dict) and image.get("url")
        ]

        await self.task_store.update_task(
            context.task_id,
            item_info=summarize_item(vehicle)
        )

        if not context.images:
            raise NoImagesAvailableError()
        return context
