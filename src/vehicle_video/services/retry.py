"""
Retry with exponential backoff for outbound calls that are safe to repeat.

    policy = RetryPolicy(max_attempts=3, base_delay=2.0)
    await policy.run(lambda: client.update_field(...), clock=clock)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from vehicle_video.utils.clock import Clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings"""
    max_attempts: int = 3
    base_delay: float = 2.0  # seconds
    exponential_base: float = 2.0
    max_delay: float = 60.0
    retry_on: Tuple[Type[BaseException], ...] = field(default_factory=lambda: (Exception,))

    def delay_for(self, attempt: int) -> float:
        """Wait before the attempt following `attempt` (1-based)."""
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        return min(delay, self.max_delay)

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retry_on)

    async def run(
        self,
        func: Callable[[], Awaitable[Any]],
        *,
        clock: Clock,
        on_retry: Optional[Callable[[BaseException, int], None]] = None,
    ) -> Any:
        """
        Await func() until it succeeds or attempts run out.

        Errors outside `retry_on` propagate immediately. Once attempts are
        exhausted the last error is re-raised. Each retried failure is logged
        as a warning, unless `on_retry` is given, which then does its own logging.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await func()
            except Exception as exc:
                if not self.is_retryable(exc) or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                if on_retry:
                    on_retry(exc, attempt)
                else:
                    logger.warning(
                        f"Attempt {attempt}/{self.max_attempts} failed "
                        f"({type(exc).__name__}: {exc}), retrying in {delay:.1f}s"
                    )
                await clock.sleep(delay)
