"""Job queue — deferred, deduplicated, single-flush scheduling.

Used as an effect scheduler, the queue collects triggered effects instead of
running them. Triggers for the same effect coalesce, so a burst of writes
produces one run that sees only the final state.

When the queue first becomes non-empty it asks its deferral primitive to
call flush() later. Without one the owner flushes by hand (tests, frame
loops):

    queue = JobQueue()
    register_effect(render, scheduler=queue.enqueue)
    state["count"] += 1
    state["count"] += 1
    queue.flush()   # render runs once

With asyncio the flush runs right after the current synchronous burst:

    queue = JobQueue(defer=asyncio_defer)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Union

from ripple.effect import Effect

logger = logging.getLogger("ripple.scheduler")

Job = Union[Effect, Callable[[], object]]
Defer = Callable[[Callable[[], object]], object]


def asyncio_defer(flush: Callable[[], object]) -> None:
    """Schedule flush on the running event loop, ahead of later queued work."""
    asyncio.get_running_loop().call_soon(flush)


class JobQueue:
    """Deduplicating ordered set of jobs with a single pending flush."""

    def __init__(self, defer: Defer | None = None) -> None:
        self._jobs: dict[Job, None] = {}
        self._defer = defer
        self._pending = False
        self._flushing = False

    @property
    def pending(self) -> bool:
        """True between the first enqueue and the end of the next flush."""
        return self._pending

    def enqueue(self, job: Job) -> None:
        """Queue job. Usable directly as an effect scheduler."""
        self._jobs[job] = None
        if not self._pending:
            self._pending = True
            if self._defer is not None:
                self._defer(self.flush)

    def discard(self, job: Job) -> None:
        self._jobs.pop(job, None)

    def flush(self) -> int:
        """Run every queued job once, in first-enqueued order.

        Jobs queued while flushing run in the same flush. Stopped effects are
        skipped. A failing job does not stop the others: every job runs, then
        the first error is re-raised and later ones are logged. Returns the
        number of jobs run.
        """
        if self._flushing:
            return 0
        self._flushing = True
        count = 0
        error: Exception | None = None
        try:
            while self._jobs:
                batch = list(self._jobs)
                self._jobs.clear()
                for job in batch:
                    if isinstance(job, Effect) and not job.active:
                        continue
                    try:
                        if isinstance(job, Effect):
                            job.run()
                        else:
                            job()
                    except Exception as exc:
                        if error is None:
                            error = exc
                        else:
                            logger.exception("Job %r failed during flush", job)
                    count += 1
        finally:
            self._flushing = False
            self._pending = False
        logger.debug("Flushed %d jobs", count)
        if error is not None:
            raise error
        return count

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job) -> bool:
        return job in self._jobs

    def __repr__(self) -> str:
        return f"JobQueue({len(self._jobs)} jobs, pending={self._pending})"
