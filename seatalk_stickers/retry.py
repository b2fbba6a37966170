"""Generic retry-with-exponential-backoff for async operations.

WHY: Telegram file downloads fail transiently (timeouts, 5xx, dropped
connections). A sticker set can have a hundred items, and one flaky
download should not cost the user a sticker.

HOW: with_backoff() runs a zero-argument coroutine function under a
tenacity AsyncRetrying loop built from a RetryPolicy: exponential wait
between attempts, bounded attempt count, retry only on the listed
exception types. Each retry is logged at WARNING before sleeping.

RULES:
- The last exception is re-raised unchanged when attempts run out
- Exceptions outside policy.retry_on propagate immediately
- Only wraps the operation; never swallows errors
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry."""

    max_attempts: int = 3
    min_wait_s: float = 1.0
    max_wait_s: float = 30.0
    multiplier: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)


DEFAULT_POLICY = RetryPolicy()


async def with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
) -> T:
    """Await ``operation()`` until it succeeds or the policy gives up."""
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(policy.retry_on),
        wait=wait_exponential(
            multiplier=policy.multiplier,
            min=policy.min_wait_s,
            max=policy.max_wait_s,
        ),
        stop=stop_after_attempt(policy.max_attempts),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
    raise AssertionError("unreachable: tenacity either returns or re-raises")
