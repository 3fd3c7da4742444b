from typing import Any, Dict, Optional

from vehicle_video.services.workflows.pipeline import WorkflowStep, StepContext

DEFAULT_STYLE = "cinematic"


def compose_prompt(vehicle: Optional[Dict[str, Any]], style: Optional[str] = None) -> str:
    """Describe the vehicle for the generator, leaving out attributes the record lacks."""
    vehicle = vehicle or {}
    color = vehicle.get("exteriorColorName") or vehicle.get("color")
    parts = [
        str(value) for value in (color, vehicle.get("year"), vehicle.get("brand"), vehicle.get("model"))
        if value not in (None, "")
    ]
    subject = " ".join(parts) if parts else "car"
    article = "an" if subject[:1].lower() in "aeiou" else "a"
    return (
        f"Cinematic promotional video of {article} {subject}. "
        "Smooth camera movement around the car, professional automotive lighting, "
        f"{style or DEFAULT_STYLE} style."
    )


class ComposePromptStep(WorkflowStep):
    """Step: Build the generation prompt from the vehicle unless the caller supplied one"""

    async def execute(self, context: StepContext) -> StepContext:
        if not (context.prompt and context.prompt.strip()):
            context.prompt = compose_prompt(context.vehicle, context.style)
        return context
