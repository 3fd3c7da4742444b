"""
Service configuration.

Values are read once from the environment (optionally populated from a local
.env file by load_local_env) into an immutable Settings object.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to a default when unset."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer.") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number.") from exc


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the video generation service."""

    vehicle_api_base_url: str = "https://carspark-api.dealerk.com"
    default_country: str = "it"

    runway_api_key: Optional[str] = None
    runway_api_url: str = "https://api.dev.runwayml.com"
    runway_api_version: str = "2024-11-06"
    runway_model: str = "gen3a_turbo"

    url_shortener_url: str = "https://is.gd/create.php"
    http_timeout_seconds: float = 30.0

    poll_interval_seconds: float = 10.0
    poll_max_attempts: int = 60
    sync_max_attempts: int = 3
    sync_base_delay_seconds: float = 2.0

    task_retention_hours: int = 24
    cleanup_interval_seconds: int = 3600

    history_dir: str = "data/history"
    task_store_backend: str = "memory"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        settings = cls(
            vehicle_api_base_url=_env_str("VEHICLE_API_BASE_URL", defaults.vehicle_api_base_url).rstrip("/"),
            default_country=_env_str("DEFAULT_COUNTRY", defaults.default_country),
            runway_api_key=_env_str("RUNWAY_API_KEY"),
            runway_api_url=_env_str("RUNWAY_API_URL", defaults.runway_api_url).rstrip("/"),
            runway_api_version=_env_str("RUNWAY_API_VERSION", defaults.runway_api_version),
            runway_model=_env_str("RUNWAY_MODEL", defaults.runway_model),
            url_shortener_url=_env_str("URL_SHORTENER_URL", defaults.url_shortener_url),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", defaults.poll_interval_seconds),
            poll_max_attempts=_env_int("POLL_MAX_ATTEMPTS", defaults.poll_max_attempts),
            sync_max_attempts=_env_int("SYNC_MAX_ATTEMPTS", defaults.sync_max_attempts),
            sync_base_delay_seconds=_env_float("SYNC_BASE_DELAY_SECONDS", defaults.sync_base_delay_seconds),
            task_retention_hours=_env_int("TASK_RETENTION_HOURS", defaults.task_retention_hours),
            cleanup_interval_seconds=_env_int("CLEANUP_INTERVAL_SECONDS", defaults.cleanup_interval_seconds),
            history_dir=_env_str("HISTORY_DIR", defaults.history_dir),
            task_store_backend=_env_str("TASK_STORE_BACKEND", defaults.task_store_backend).lower(),
        )
        if settings.poll_max_attempts <= 0:
            raise ValueError("POLL_MAX_ATTEMPTS must be a positive integer.")
        if settings.sync_max_attempts <= 0:
            raise ValueError("SYNC_MAX_ATTEMPTS must be a positive integer.")
        return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings loaded from the environment on first use."""
    return Settings.from_env()
