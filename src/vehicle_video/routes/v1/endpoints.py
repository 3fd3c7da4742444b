"""
Video generation endpoints.

Starting a generation only creates the task; clients poll the status endpoint
until the task is completed or failed.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from vehicle_video.services.history import HistoryPersister
from vehicle_video.services.task_store import TaskStatus, TaskStore
from vehicle_video.services.workflows.executor import WorkflowExecutor

from .dependencies import RequestAuth, get_executor, get_history, get_task_store, require_auth

logger = logging.getLogger(__name__)

router = APIRouter()

WORKFLOW_TYPE = "generate_vehicle_video"


class VideoGenerationRequest(BaseModel):
    prompt: Optional[str] = Field(default=None, description="Custom prompt; built from the vehicle when omitted")
    style: Optional[str] = Field(default=None, description='Video style (e.g. "cinematic")')
    duration: Optional[Any] = Field(default=None, description="Video duration in seconds (5 or 10; anything else falls back to 5)")
    ratio: Optional[Any] = Field(default=None, description='Aspect ratio ("1280:768" or "768:1280"; anything else falls back to "1280:768")')


@router.post("/vehicle/{vehicle_id}/generate-video")
async def generate_video(
    vehicle_id: str,
    request: Optional[VideoGenerationRequest] = Body(default=None),
    auth: RequestAuth = Depends(require_auth),
    executor: WorkflowExecutor = Depends(get_executor),
) -> Dict[str, Any]:
    """
    Start generating a promotional video for a vehicle.

    This endpoint returns as soon as the task exists. The workflow then:
    1. Loads the vehicle and its gallery photos
    2. Submits an image-to-video job and polls it until it finishes
    3. Shortens the video URL and stores it on the vehicle record

    Poll for status: GET /vehicle/video/{task_id}
    """
    request = request or VideoGenerationRequest()
    try:
        task_id = await executor.start_workflow_async(
            WORKFLOW_TYPE,
            item_id=vehicle_id,
            auth_token=auth.token,
            country=auth.country,
            prompt=request.prompt,
            style=request.style,
            duration=request.duration,
            ratio=request.ratio
        )
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail=str(e)
        )
    except Exception as e:
        logger.exception("Failed to start video generation")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start video generation: {str(e)}"
        )

    return {
        "taskId": task_id,
        "itemId": vehicle_id,
        "status": TaskStatus.PROCESSING.value,
        "message": f"Video generation started. Check status at /vehicle/video/{task_id}",
    }


@router.get("/vehicle/video/{task_id}")
async def get_video_status(
    task_id: str,
    task_store: TaskStore = Depends(get_task_store),
) -> Dict[str, Any]:
    """
    Get the current status of a video generation task.

    Tasks stay visible for the retention window (24h by default) after creation.
    """
    status = await task_store.get_status_view(task_id)

    if not status:
        raise HTTPException(status_code=404, detail="Task not found")

    return status


@router.get("/vehicle/video-history")
async def get_video_history(
    vehicle_id: Optional[str] = Query(default=None, alias="vehicleId", description="Filter by vehicle ID"),
    status: Optional[TaskStatus] = Query(default=None, description="Filter by task status"),
    month: Optional[str] = Query(default=None, description="Filter by month (YYYY-MM)"),
    limit: Optional[int] = Query(default=None, ge=1, description="Maximum number of results"),
    auth: RequestAuth = Depends(require_auth),
    history: HistoryPersister = Depends(get_history),
) -> Dict[str, Any]:
    """Finished tasks, newest first."""
    try:
        entries = await history.query(
            item_id=vehicle_id,
            status=status.value if status else None,
            month=month,
            limit=limit
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to read video history")
        raise HTTPException(status_code=500, detail=f"Failed to read video history: {str(e)}")

    return {"count": len(entries), "history": entries}
