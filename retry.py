"""Single retry-with-backoff policy applied to every completion call."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """max_attempts counts the first call, so 3 means one call plus two retries."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given 1-based failed attempt."""
        return self.base_delay * (self.multiplier ** (attempt - 1))


DEFAULT_RETRY_POLICY = RetryPolicy()


def call_with_retry(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    description: str = "call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run fn until it succeeds or the policy's attempts are used up.

    Raises RuntimeError chained to the last underlying error.
    """
    last_error: Exception | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return fn()
        except Exception as exc:  # broad: any provider/network error is retryable
            last_error = exc
            LOGGER.warning(
                "%s failed on attempt %s/%s: %s",
                description,
                attempt,
                policy.max_attempts,
                exc,
            )
            if attempt < policy.max_attempts:
                sleep(policy.delay_for(attempt))

    raise RuntimeError(f"{description} failed after {policy.max_attempts} attempts: {last_error}") from last_error
