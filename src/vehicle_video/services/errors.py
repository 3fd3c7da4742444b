"""Exceptions raised by the task store, the outbound clients and the video workflow."""


class TaskNotFoundError(KeyError):
    """Raised when updating a task id the store does not know."""

    def __init__(self, task_id: str):
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"Task not found: {self.task_id}"


class InvalidStatusTransitionError(ValueError):
    """Raised when a status change would move a task backwards or out of a terminal state."""


class VideoWorkflowError(Exception):
    """Hard failure of a pipeline step; the task ends as failed with this message."""


class NoImagesAvailableError(VideoWorkflowError):
    def __init__(self, message: str = "no images available"):
        super().__init__(message)


class ProviderNotConfiguredError(VideoWorkflowError):
    """The generation provider cannot be called (missing API key)."""


class ProviderSubmissionError(VideoWorkflowError):
    """The provider rejected the job or returned no job id."""


class ProviderJobFailedError(VideoWorkflowError):
    """The provider reported the job as failed."""


class ProviderTimeoutError(VideoWorkflowError):
    """The provider job did not reach a terminal status within the polling budget."""


class VideoUrlExtractionError(VideoWorkflowError):
    """The provider reported success but no known output shape held a video URL."""
