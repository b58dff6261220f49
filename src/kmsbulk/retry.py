"""Bounded retry with exponential backoff for cloud API calls.

The encrypt and upload calls go through call_with_retry. Only errors the
caller classifies as retryable are retried; everything else propagates on
the first failure.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from kmsbulk.config.models import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times, and how patiently, a call is attempted.

    Attributes:
        max_attempts: Total attempts including the first (1 = no retry).
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for any single delay.
        jitter: Random spread (0-1) applied to each delay.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        """Build a policy from the [retry] configuration section."""
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            jitter=config.jitter,
        )

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """A policy that attempts each call exactly once."""
        return cls(max_attempts=1)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given failed attempt (1-based), before jitter."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    is_retryable: Callable[[Exception], bool],
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call func, retrying retryable failures with exponential backoff.

    Args:
        func: Zero-argument callable to attempt.
        policy: Attempt budget and delays.
        is_retryable: Decides whether an exception is worth another attempt.
        description: Used in log messages (e.g., "encrypt inbox/1.").
        sleep: Sleep function, injectable for tests.

    Returns:
        The return value of func.

    Raises:
        Exception: The last exception raised by func when it is not
            retryable or no attempts are left.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = func()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt >= policy.max_attempts:
                if policy.max_attempts > 1:
                    logger.warning(
                        "%s failed after %d attempts: %s",
                        description,
                        attempt,
                        e,
                    )
                raise

            delay = policy.delay_for(attempt)
            delay *= 1 + random.uniform(-policy.jitter, policy.jitter)  # nosec B311
            delay = max(0.0, delay)
            logger.info(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                description,
                attempt,
                policy.max_attempts,
                delay,
                e,
            )
            sleep(delay)
            continue

        if attempt > 1:
            logger.info("%s succeeded after %d attempt(s)", description, attempt)
        return result

    raise RuntimeError("call_with_retry: unexpected state")
