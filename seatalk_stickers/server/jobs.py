"""In-memory runner for background conversion jobs.

WHY: A /convert command can take minutes (a hundred stickers at one
SeaTalk call every two seconds), but SeaTalk expects the webhook to
answer right away. Jobs therefore run detached from the request, and
something has to own them: keep them alive, log their crashes, and
drain them at shutdown.

HOW: Three components work together:
  JobStatus : enum of job states
  Job       : dataclass with the job key, timestamps, status and error
  JobRunner : dict of asyncio tasks keyed by the triggering message id,
               a done-callback that records the outcome and logs failures,
               and TTL cleanup of finished job records

RULES:
- Jobs are asyncio tasks on the server's event loop, never threads; the
  SeaTalk client, token lock and rate limiter are bound to that loop
- A key that already has a running job is not started twice (SeaTalk
  may redeliver an event)
- A job's exception never reaches the HTTP caller; it is logged here
- Finished jobs are kept for DEFAULT_TTL_SECONDS for /health reporting
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Default time-to-live for finished job records (seconds)
DEFAULT_TTL_SECONDS = 3600


class JobStatus(str, enum.Enum):
    """Valid states for a background job.

    RULES:
    - running: task scheduled or executing
    - completed: coroutine returned normally
    - failed: coroutine raised (error holds the message)
    - cancelled: task cancelled at shutdown
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Job:
    """Bookkeeping for one submitted job."""

    key: str
    status: JobStatus
    created_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None


class JobRunner:
    """Owns every background job task.

    HOW: submit() wraps the coroutine in asyncio.create_task and keeps a
    strong reference in self._tasks until the task finishes, so it cannot
    be garbage-collected mid-flight. _on_done() records the outcome.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._jobs: Dict[str, Job] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._ttl_seconds = ttl_seconds

    def submit(self, key: str, coro: Coroutine[Any, Any, Any]) -> Job:
        """Start ``coro`` as a background task keyed by ``key``.

        RULES:
        - Must be called from inside the running event loop
        - If ``key`` is already running, ``coro`` is closed unstarted and
          the existing job is returned
        """
        existing = self._tasks.get(key)
        if existing is not None and not existing.done():
            coro.close()
            logger.info("Job %s already running, ignoring duplicate", key)
            return self._jobs[key]

        job = Job(key=key, status=JobStatus.RUNNING, created_at=time.time())
        self._jobs[key] = job
        task = asyncio.create_task(coro, name="job-{}".format(key))
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._on_done(key, t))
        logger.info("Started job %s", key)
        return job

    def _on_done(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        job = self._jobs.get(key)
        if job is None:
            return
        job.completed_at = time.time()

        if task.cancelled():
            job.status = JobStatus.CANCELLED
            logger.warning("Job %s cancelled", key)
            return

        exc = task.exception()
        if exc is not None:
            job.status = JobStatus.FAILED
            job.error = str(exc)
            logger.error("Job %s failed: %s", key, exc, exc_info=exc)
            return

        job.status = JobStatus.COMPLETED
        logger.info("Job %s completed in %.1fs", key, job.completed_at - job.created_at)

    def get_job(self, key: str) -> Optional[Job]:
        return self._jobs.get(key)

    def list_jobs(self) -> List[Job]:
        """All known jobs, oldest first."""
        return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def active_jobs(self) -> int:
        return len(self._tasks)

    async def wait_all(self) -> None:
        """Wait for every running job to finish (errors are already logged)."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Give running jobs ``timeout`` seconds to finish, then cancel them."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info("Waiting for %d running job(s) before shutdown", len(tasks))
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def cleanup_expired(self) -> int:
        """Drop finished job records older than the TTL; returns the count."""
        now = time.time()
        expired = [
            key
            for key, job in self._jobs.items()
            if job.completed_at is not None and now - job.completed_at > self._ttl_seconds
        ]
        for key in expired:
            del self._jobs[key]
        return len(expired)
