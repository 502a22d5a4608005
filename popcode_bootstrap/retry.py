"""Bounded exponential-backoff retry for source-host calls.

Only failures that never reached the server are retried. An HTTP error status
means the server answered, so retrying would just repeat the answer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, TypeVar

from popcode_bootstrap.failures import is_transient_failure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry."""

    retries: int = 5  # Attempts after the first one
    factor: float = 2.0
    min_delay: float = 1.0  # Seconds
    max_delay: float = 10.0  # Seconds

    def __post_init__(self):
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")
        if self.factor <= 1:
            raise ValueError(f"factor must be > 1, got {self.factor}")
        if self.min_delay < 0:
            raise ValueError(f"min_delay must be >= 0, got {self.min_delay}")
        if self.max_delay < self.min_delay:
            raise ValueError("max_delay must not be smaller than min_delay")

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (counted from 0)."""
        return min(self.max_delay, self.min_delay * (self.factor**attempt))

    def with_retries(self, retries: int) -> "RetryPolicy":
        return replace(self, retries=retries)


async def perform_with_retries(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    is_transient: Callable[[BaseException], bool] = is_transient_failure,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying transient failures according to ``policy``.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        policy: Retry policy (defaults to RetryPolicy())
        is_transient: Decides whether a failure is worth retrying
        sleep: Awaitable delay, swappable in tests

    Returns:
        The operation's result.

    Raises:
        The first non-transient failure, or the last transient one once
        retries are exhausted.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as error:
            if not is_transient(error) or attempt >= policy.retries:
                raise
            wait_time = policy.delay_for_attempt(attempt)
            attempt += 1
            logger.warning(
                f"Transient network failure: {error}. "
                f"Retrying in {wait_time:.1f}s (attempt {attempt}/{policy.retries})"
            )
            await sleep(wait_time)
