import pytest

from vehicle_video.services.workflows.pipeline import StepContext
from vehicle_video.services.workflows.steps import ComposePromptStep
from vehicle_video.services.workflows.steps.compose_prompt import compose_prompt


def test_compose_prompt_full_record():
    vehicle = {"brand": "Alfa Romeo", "model": "Giulia", "year": 2022, "exteriorColorName": "Rosso"}
    assert compose_prompt(vehicle, "sporty") == (
        "Cinematic promotional video of a Rosso 2022 Alfa Romeo Giulia. "
        "Smooth camera movement around the car, professional automotive lighting, sporty style."
    )


def test_compose_prompt_skips_missing_attributes():
    prompt = compose_prompt({"brand": "Audi", "model": "A3"})
    assert prompt.startswith("Cinematic promotional video of an Audi A3.")
    assert prompt.endswith("cinematic style.")


def test_compose_prompt_without_vehicle_data():
    assert compose_prompt(None).startswith("Cinematic promotional video of a car.")


@pytest.mark.asyncio
async def test_step_keeps_caller_prompt(store):
    step = ComposePromptStep(store)
    context = StepContext(task_id="1", item_id="V1", auth_token="t", prompt="Drone shot", vehicle={"brand": "Fiat"})

    assert (await step.execute(context)).prompt == "Drone shot"

    context.prompt = "   "
    assert "Fiat" in (await step.execute(context)).prompt
