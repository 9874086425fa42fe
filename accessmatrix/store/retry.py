"""Bounded retries for transient store failures.

Only ``StoreUnavailable`` is retried. ``StaleVersion`` is never retried
here: the caller must re-read the household before trying again, otherwise
a stale write would be replayed blindly.
"""

import random
import time
from typing import Callable, Optional, TypeVar

from ..common.logger import get_logger
from ..core.errors import ServiceUnavailable, StoreUnavailable

logger = get_logger("store.retry")

T = TypeVar("T")


class RetryStrategy:
    """
    Retry logic with exponential backoff and jitter.
    """

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 0.1,
                 max_delay: float = 2.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 sleep: Optional[Callable[[float], None]] = None):
        """
        Initialize retry strategy.

        Args:
            max_attempts: Total attempts, including the first call
            base_delay: Base delay in seconds
            max_delay: Maximum delay in seconds
            exponential_base: Base for exponential backoff
            jitter: Whether to add random jitter to delays
            sleep: Sleep function (tests pass a no-op)
        """
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.sleep = sleep or time.sleep

    @classmethod
    def from_settings(cls, settings) -> "RetryStrategy":
        return cls(
            max_attempts=settings.store_retry_attempts,
            base_delay=settings.store_retry_base_delay,
            max_delay=settings.store_retry_max_delay,
        )

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number (0-based)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Add ±25% jitter
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)

    def should_retry(self, attempt: int, error: Exception) -> bool:
        """Determine if operation should be retried after ``attempt`` tries."""
        if attempt >= self.max_attempts:
            return False
        return isinstance(error, StoreUnavailable)

    def call(self, operation: Callable[[], T], description: str = "store operation") -> T:
        """Run ``operation``, retrying transient store failures.

        Raises:
            ServiceUnavailable: If every attempt failed with ``StoreUnavailable``
        """
        attempt = 0
        while True:
            try:
                return operation()
            except StoreUnavailable as e:
                attempt += 1
                if not self.should_retry(attempt, e):
                    logger.error(f"{description} failed after {attempt} attempt(s): {e}")
                    raise ServiceUnavailable(
                        f"{description} failed after {attempt} attempt(s)", attempts=attempt
                    ) from e
                delay = self.calculate_delay(attempt - 1)
                logger.warning(
                    f"{description} unavailable (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {delay:.2f}s"
                )
                self.sleep(delay)


def call_with_retry(
    operation: Callable[[], T],
    strategy: Optional[RetryStrategy] = None,
    description: str = "store operation",
) -> T:
    """Shorthand for ``(strategy or RetryStrategy()).call(operation)``."""
    return (strategy or RetryStrategy()).call(operation, description)
