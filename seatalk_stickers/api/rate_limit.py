"""Async minimum-spacing rate limiter for outbound SeaTalk calls.

WHY: The SeaTalk Open API throttles bots aggressively. Every outbound
call (token exchange included) must be spaced at least one interval apart,
no matter how many jobs are talking to SeaTalk at the same time.

HOW: Callers await until_ready(). An internal asyncio.Lock serializes
them; the holder sleeps until the interval since the previous admission
has elapsed, records its own admission time, and releases.

RULES:
- At most one admission per interval across all callers
- The first call is admitted immediately
- Internally synchronized; callers need no extra locking
"""

from __future__ import annotations

import asyncio
import time

DEFAULT_INTERVAL_S = 2.0


class RateLimiter:
    """Admit at most one caller per ``interval_s`` seconds."""

    def __init__(self, interval_s: float = DEFAULT_INTERVAL_S) -> None:
        if interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        self.interval_s = interval_s
        self._last_admitted: float | None = None
        self._lock = asyncio.Lock()

    async def until_ready(self) -> None:
        """Wait until this caller may send, then claim the slot."""
        async with self._lock:
            if self._last_admitted is not None:
                # The loop timer may fire a hair early; re-check until the slot is due.
                wait_time = self._last_admitted + self.interval_s - time.monotonic()
                while wait_time > 0:
                    await asyncio.sleep(wait_time)
                    wait_time = self._last_admitted + self.interval_s - time.monotonic()
            self._last_admitted = time.monotonic()
