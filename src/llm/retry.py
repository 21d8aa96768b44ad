# src/llm/retry.py
"""Uniform retry policy for outbound provider calls.

Fixed delay between attempts, no backoff and no jitter. The error raised by
the final attempt propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from docreview.llm.errors import TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget for one logical call."""

    max_attempts: int = 3
    delay_s: float = 2.0
    retry_on: tuple[type[BaseException], ...] = (TransientProviderError,)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Whether ``error`` raised by 1-based ``attempt`` earns another try."""
        return attempt < self.max_attempts and isinstance(error, self.retry_on)


DEFAULT_RETRY_POLICY = RetryPolicy()


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    label: str = "provider call",
) -> T:
    """Run ``fn`` until it succeeds or the policy gives up.

    ``fn`` is a zero-argument coroutine factory; every attempt gets a fresh
    coroutine.

    Raises:
        The exception of the last failed attempt, unmodified.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as e:
            if not policy.should_retry(e, attempt):
                if attempt > 1:
                    logger.error(
                        "%s failed after %d attempts: %s", label, attempt, e,
                    )
                raise
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label, attempt, policy.max_attempts, policy.delay_s, e,
            )
            await asyncio.sleep(policy.delay_s)
