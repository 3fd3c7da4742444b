"""
Request-scoped dependencies: caller authentication, country scope and the
shared services. Tests swap the services through app.dependency_overrides.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Query

from vehicle_video.services.history import HistoryPersister, history_persister
from vehicle_video.services.task_store import TaskStore, task_store_factory
from vehicle_video.services.workflows.executor import WorkflowExecutor, workflow_executor
from vehicle_video.utils.config import get_settings


@dataclass
class RequestAuth:
    token: str
    country: str


def require_auth(
    authorization: Optional[str] = Header(default=None),
    country: Optional[str] = Query(default=None, description="Catalog country code"),
) -> RequestAuth:
    """Reject requests without an Authorization header; the token is forwarded as-is."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")
    return RequestAuth(token=authorization, country=country or get_settings().default_country)


def get_task_store() -> TaskStore:
    return task_store_factory()


def get_history() -> HistoryPersister:
    return history_persister


def get_executor() -> WorkflowExecutor:
    return workflow_executor
