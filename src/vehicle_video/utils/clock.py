"""
Time source used by the task store, the polling loop, retries and cleanup.

Workflow code never calls datetime.now() or asyncio.sleep() directly so that
tests can drive long waits with FakeClock instead of the wall clock.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import List, Optional


class Clock(ABC):
    """Source of the current time and of suspension between attempts."""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for the given number of seconds."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class FakeClock(Clock):
    """
    Deterministic clock: sleep() returns immediately after advancing time.

    Requested durations are recorded in `sleeps`. Each sleep still yields
    to the event loop once.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)
