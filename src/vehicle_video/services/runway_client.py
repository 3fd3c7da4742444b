"""
Runway async image-to-video client
See the docs at https://docs.dev.runwayml.com/api/
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import httpx

from vehicle_video.services.errors import ProviderNotConfiguredError, ProviderSubmissionError
from vehicle_video.utils.config import get_settings

logger = logging.getLogger(__name__)

VALID_DURATIONS = (5, 10)
DEFAULT_DURATION = 5
VALID_RATIOS = ("1280:768", "768:1280")
DEFAULT_RATIO = "1280:768"


class JobState(str, Enum):
    """Provider job status, normalized across vocabularies."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_SUCCEEDED_STATUSES = {"succeeded", "success", "completed", "complete"}
_FAILED_STATUSES = {"failed", "failure", "error", "cancelled", "canceled"}


def normalize_status(raw_status: Optional[str]) -> JobState:
    """Map a provider status string, case-insensitively, onto JobState."""
    value = (raw_status or "").strip().lower()
    if value in _SUCCEEDED_STATUSES:
        return JobState.SUCCEEDED
    if value in _FAILED_STATUSES:
        return JobState.FAILED
    return JobState.PENDING


def _url_from(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _flat_url(output: Any) -> Optional[str]:
    if isinstance(output, dict):
        return _url_from(output.get("url"))
    return None


def _video_url(output: Any) -> Optional[str]:
    if isinstance(output, dict) and isinstance(output.get("video"), dict):
        return _url_from(output["video"].get("url"))
    return None


def _result_url(output: Any) -> Optional[str]:
    if isinstance(output, dict) and isinstance(output.get("result"), dict):
        return _url_from(output["result"].get("url"))
    return None


def _first_array_item(output: Any) -> Optional[str]:
    if isinstance(output, list) and output:
        first = output[0]
        if isinstance(first, dict):
            return _url_from(first.get("url"))
        return _url_from(first)
    return None


def _plain_string(output: Any) -> Optional[str]:
    return _url_from(output)


# Tried in order; append new shapes here as the provider's schema evolves.
VIDEO_URL_EXTRACTORS: List[Callable[[Any], Optional[str]]] = [
    _flat_url,
    _video_url,
    _result_url,
    _first_array_item,
    _plain_string,
]


def extract_video_url(output: Any) -> Optional[str]:
    """Return the first non-empty URL any extractor finds in `output`, else None."""
    for extractor in VIDEO_URL_EXTRACTORS:
        url = extractor(output)
        if url:
            return url
    return None


@dataclass
class GenerationStatus:
    """One poll observation of a provider job."""
    state: JobState
    raw_status: Optional[str]
    output: Any = None
    video_url: Optional[str] = None
    failure: Optional[str] = None


def _as_whole_number(value: Any) -> Optional[int]:
    """10, 10.0 and "10" all give 10; anything fractional or non-numeric gives None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else None


def clamp_duration(duration: Any, log_id: str = "") -> Optional[int]:
    """Replace an unsupported duration with the default, logging the substitution."""
    if duration is None:
        return None
    seconds = _as_whole_number(duration)
    if seconds not in VALID_DURATIONS:
        logger.warning(f"[{log_id}] Invalid duration value: {duration!r}. Defaulting to {DEFAULT_DURATION}.")
        return DEFAULT_DURATION
    return seconds


def clamp_ratio(ratio: Any, log_id: str = "") -> Optional[str]:
    """Replace an unsupported aspect ratio with the default, logging the substitution."""
    if ratio is None:
        return None
    if not isinstance(ratio, str) or ratio.strip() not in VALID_RATIOS:
        logger.warning(f"[{log_id}] Invalid ratio value: {ratio!r}. Defaulting to \"{DEFAULT_RATIO}\".")
        return DEFAULT_RATIO
    return ratio.strip()


def format_prompt_image(images: Sequence[str]) -> Union[str, List[Dict[str, str]]]:
    """
    A single image is sent as a bare URL; two or more use interpolation mode,
    where the first two images are tagged as the first and last frames.
    """
    if not images:
        raise ValueError("At least one image is required")
    if len(images) == 1:
        return images[0]
    return [
        {"uri": images[0], "position": "first"},
        {"uri": images[1], "position": "last"},
    ]


class RunwayClient:
    """An async wrapper around the Runway REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.runway_api_key
        self.base_url = (base_url or settings.runway_api_url).rstrip("/")
        self.api_version = api_version or settings.runway_api_version
        self.model = model or settings.runway_model
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _inject_auth(self, request: httpx.Request) -> None:
        """Event hook to inject Authorization and version headers on each request"""
        request.headers["Authorization"] = f"Bearer {self.api_key}"
        request.headers["X-Runway-Version"] = self.api_version

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client"""
        if not self.api_key:
            raise ProviderNotConfiguredError(
                "Runway API key is not set. Set RUNWAY_API_KEY or pass api_key to RunwayClient."
            )
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                event_hooks={"request": [self._inject_auth]},
            )
        return self._client

    async def create_image_to_video(
        self,
        prompt_text: str,
        images: Sequence[str],
        *,
        duration: Any = None,
        ratio: Any = None,
        style: Optional[str] = None,
        model: Optional[str] = None,
        log_id: str = "",
    ) -> str:
        """
        Submit an image-to-video generation job.

        Args:
            prompt_text: Text prompt for the generation.
            images: Source image URLs; only the first two are used.
            duration: Seconds, one of VALID_DURATIONS (others fall back to the default).
            ratio: One of VALID_RATIOS (others fall back to the default).
            style: Free-form style hint passed through as a parameter.

        Returns:
            The provider's job id.
        """
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "promptText": prompt_text,
            "promptImage": format_prompt_image(images),
        }
        duration = clamp_duration(duration, log_id)
        ratio = clamp_ratio(ratio, log_id)
        if duration is not None:
            payload["duration"] = duration
        if ratio is not None:
            payload["ratio"] = ratio
        if style:
            payload["parameters"] = {"style": style}

        logger.info(
            f"[{log_id}] Submitting generation job (model={payload['model']}, "
            f"images={min(len(images), 2)}, duration={duration}, ratio={ratio}, style={style})"
        )
        client = await self._get_client()
        response = await client.post("/v1/image_to_video", json=payload)
        response.raise_for_status()
        data = response.json()

        job_id = data.get("id") or data.get("taskId")
        if not job_id:
            raise ProviderSubmissionError(f"Provider response did not include a job id: {data}")
        logger.info(f"[{log_id}] Provider accepted job {job_id}")
        return str(job_id)

    async def get_job(self, job_id: str) -> GenerationStatus:
        """Poll a job and normalize its status and output."""
        client = await self._get_client()
        response = await client.get(f"/v1/tasks/{job_id}")
        response.raise_for_status()
        data = response.json()

        raw_status = data.get("status")
        state = normalize_status(raw_status)
        output = data.get("output")
        failure = None
        if state is JobState.FAILED:
            failure = data.get("failure") or data.get("error") or "Provider reported the job as failed"
        return GenerationStatus(
            state=state,
            raw_status=raw_status,
            output=output,
            video_url=extract_video_url(output) if state is JobState.SUCCEEDED else None,
            failure=failure,
        )

    async def close(self):
        """Close httpx client connection"""
        if self._client:
            await self._client.aclose()
            self._client = None


runway_client = RunwayClient()
