from .pipeline import WorkflowPipeline, StepContext, WorkflowStep
from .steps import (
    FetchVehicleStep,
    ComposePromptStep,
    SubmitGenerationStep,
    MonitorGenerationStep,
    ShortenUrlStep,
    SyncVehicleStep,
    FinalizeStep,
)

__all__ = [
    "FetchVehicleStep",
    "ComposePromptStep",
    "SubmitGenerationStep",
    "MonitorGenerationStep",
    "ShortenUrlStep",
    "SyncVehicleStep",
    "FinalizeStep",
    "WorkflowPipeline",
    "StepContext",
    "WorkflowStep",
]
