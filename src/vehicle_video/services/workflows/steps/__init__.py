from .fetch_vehicle import FetchVehicleStep
from .compose_prompt import ComposePromptStep
from .submit_generation import SubmitGenerationStep
from .monitor_generation import MonitorGenerationStep
from .shorten_url import ShortenUrlStep
from .sync_vehicle import SyncVehicleStep
from .finalize import FinalizeStep

__all__ = [
    "FetchVehicleStep",
    "ComposePromptStep",
    "SubmitGenerationStep",
    "MonitorGenerationStep",
    "ShortenUrlStep",
    "SyncVehicleStep",
    "FinalizeStep",
]
