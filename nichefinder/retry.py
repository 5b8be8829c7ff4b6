"""Bounded polling with increasing backoff."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from nichefinder.config import (
    PAYMENT_VERIFY_ATTEMPTS,
    PAYMENT_VERIFY_BASE_DELAY,
    PAYMENT_VERIFY_MAX_MULTIPLIER,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try, and how long to wait after each failed try."""

    max_attempts: int
    base_delay: float  # seconds
    max_multiplier: int  # delay stops growing after this many attempts

    def delay(self, attempt: int) -> float:
        """Delay after the given 1-based attempt: base * min(attempt, cap)."""
        return self.base_delay * min(attempt, self.max_multiplier)


PAYMENT_VERIFY_POLICY = RetryPolicy(
    max_attempts=PAYMENT_VERIFY_ATTEMPTS,
    base_delay=PAYMENT_VERIFY_BASE_DELAY,
    max_multiplier=PAYMENT_VERIFY_MAX_MULTIPLIER,
)


def poll(
    check: Callable[[], bool],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Call an idempotent ``check`` until it returns True or attempts run out.

    Returns:
        True if a check succeeded, False after ``policy.max_attempts`` misses.
    """
    for attempt in range(1, policy.max_attempts + 1):
        if check():
            return True
        if attempt < policy.max_attempts:
            delay = policy.delay(attempt)
            logger.info("not ready (attempt %d/%d), retrying in %.1fs",
                        attempt, policy.max_attempts, delay)
            sleep(delay)
    return False
