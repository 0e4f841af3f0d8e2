"""
Retry policy — bounded retries with exponential backoff and jitter.

Used by the HTTP client for transient failures. Each attempt waits
``base_delay * 2**(attempt-1)`` seconds, capped at ``max_delay``,
plus up to 30% random jitter.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """How many times, and how patiently, to retry a call."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        jitter = random.uniform(0, delay * 0.3)
        return delay + jitter

    def call(
        self,
        fn: Callable[[], T],
        is_transient: Callable[[Exception], bool],
        label: str = "",
    ) -> T:
        """Run ``fn``, retrying while it raises transient errors.

        The last error is re-raised once attempts are exhausted.
        Non-transient errors are raised immediately.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except Exception as e:
                if attempt >= self.max_attempts or not is_transient(e):
                    raise
                delay = self.delay_for(attempt)
                logger.debug(
                    "Retrying %s: attempt %d/%d failed (%s), waiting %.1fs",
                    label or "call",
                    attempt,
                    self.max_attempts,
                    e,
                    delay,
                )
                self.sleep(delay)
