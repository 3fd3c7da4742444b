from vehicle_video.services.retry import RetryPolicy
from vehicle_video.services.workflows import (
    WorkflowPipeline,
    FetchVehicleStep,
    ComposePromptStep,
    SubmitGenerationStep,
    MonitorGenerationStep,
    ShortenUrlStep,
    SyncVehicleStep,
    FinalizeStep,
)


def generate_vehicle_video(
    task_store,
    history,
    *,
    vehicle_client,
    provider_client,
    url_shortener,
    clock,
    settings
) -> WorkflowPipeline:
    """
    Generate a promotional video from a vehicle's gallery photos, shorten the
    resulting link and store it on the vehicle record.
    """
    steps = [
        FetchVehicleStep(task_store, vehicle_client),
        ComposePromptStep(task_store),
        SubmitGenerationStep(task_store, provider_client),
        MonitorGenerationStep(
            task_store,
            provider_client,
            clock,
            max_attempts=settings.poll_max_attempts,
            poll_interval=settings.poll_interval_seconds
        ),
        ShortenUrlStep(task_store, url_shortener),
        SyncVehicleStep(
            task_store,
            vehicle_client,
            clock,
            retry_policy=RetryPolicy(
                max_attempts=settings.sync_max_attempts,
                base_delay=settings.sync_base_delay_seconds
            )
        ),
        FinalizeStep(task_store),
    ]

    return WorkflowPipeline(steps=steps, task_store=task_store, history=history)
