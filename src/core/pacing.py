"""
Paced job queue.

Runs submitted jobs one at a time, strictly in submission order, and keeps a
minimum delay between the start of one job and the start of the next. Used to
serialize outbound calls to a rate-limited API without bursting.

Admission and pacing are separate steps: a job first wins the running slot
(FIFO), and only then waits out the remainder of the interval. A later job can
never overtake an earlier one while the earlier one is pacing.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import math
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Set, Tuple, TypeVar, Union

from core.errors import QueueDesyncError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A job may return a plain value or an awaitable producing one.
Job = Callable[[], Union[T, Awaitable[T]]]


class PacedQueue:
    """FIFO queue with a single running slot and a minimum start-to-start delay.

    ``submit`` never blocks: it admits the job and returns a future that
    settles with exactly the job's own result or exception. A failing job still
    hands the slot to the next one. Cancelling the returned future does not
    withdraw the job; it still runs and advances the pacing clock.

    There is no timeout on job bodies. A job that never finishes holds the slot
    forever, so wrap such callables before submitting them.
    """

    def __init__(self, min_interval: float = 0.0) -> None:
        try:
            interval = float(min_interval)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"min_interval must be a number, got {min_interval!r}") from e
        if math.isnan(interval) or math.isinf(interval) or interval < 0:
            raise ValidationError("min_interval must be a finite, non-negative number of seconds")
        self._min_interval = interval

        # Monotonic start time of the most recent job; None until the first start.
        self._last_start: Optional[float] = None

        self._ids = itertools.count(1)
        self._running: Set[int] = set()
        self._waiting: Deque[Tuple[int, asyncio.Future]] = deque()

        # Keep references so pending tasks are not garbage-collected.
        self._tasks: Set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return (
            f"<PacedQueue min_interval={self._min_interval} "
            f"running={len(self._running)} waiting={len(self._waiting)}>"
        )

    def __len__(self) -> int:
        return len(self._running) + len(self._waiting)

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_start(self) -> Optional[float]:
        return self._last_start

    @property
    def waiting(self) -> int:
        """Number of admitted jobs that have not won the running slot yet."""
        return len(self._waiting)

    @property
    def busy(self) -> bool:
        return bool(self._running)

    # --- Public API ---

    def submit(self, job: Job[T]) -> "asyncio.Future[T]":
        """Admit ``job`` and return a future for its outcome.

        Must be called from a running event loop.
        """
        if not callable(job):
            raise ValidationError("job must be a zero-argument callable")

        loop = asyncio.get_running_loop()
        job_id = next(self._ids)
        handle: asyncio.Future = loop.create_future()

        release: Optional[asyncio.Future] = None
        if self._running or self._waiting:
            release = loop.create_future()
            self._waiting.append((job_id, release))
            logger.debug("Job #%d queued at position %d", job_id, len(self._waiting))
        else:
            self._running.add(job_id)

        task = loop.create_task(self._execute(job_id, job, release, handle))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return handle

    async def run(self, job: Job[T]) -> T:
        return await self.submit(job)

    async def drain(self) -> None:
        """Wait until every job submitted before this call has completed.

        Jobs submitted while draining are not waited for. Never call this from
        inside a job of the same queue: it would wait on itself.
        """
        pending = list(self._tasks)
        if pending:
            await asyncio.wait(pending)

    # --- Internals ---

    async def _execute(
        self,
        job_id: int,
        job: Job[Any],
        release: Optional[asyncio.Future],
        handle: asyncio.Future,
    ) -> None:
        if release is not None:
            try:
                await release
            except asyncio.CancelledError:
                # Only reachable on loop teardown; the slot may already be ours.
                if job_id in self._running:
                    self._complete(job_id, handle)
                else:
                    self._forget_waiter(job_id, release)
                handle.cancel()
                raise
            logger.debug("Job #%d released", job_id)

        try:
            await self._pace()
            self._last_start = time.monotonic()
            logger.debug("Job #%d started", job_id)

            result = job()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            self._complete(job_id, handle)
            handle.cancel()
            raise
        except Exception as e:
            logger.debug("Job #%d failed: %r", job_id, e)
            self._complete(job_id, handle)
            if not handle.done():
                handle.set_exception(e)
            return
        except BaseException as e:
            self._complete(job_id, handle)
            if not handle.done():
                handle.set_exception(e)
            raise

        self._complete(job_id, handle)
        if not handle.done():
            handle.set_result(result)

    async def _pace(self) -> None:
        if self._last_start is None or self._min_interval <= 0:
            return

        # Sleep can wake a little early, so re-check until the interval is met.
        while True:
            remaining = self._last_start + self._min_interval - time.monotonic()
            if remaining <= 0:
                return
            await asyncio.sleep(remaining)

    def _complete(self, job_id: int, handle: asyncio.Future) -> None:
        try:
            self._end(job_id)
        except QueueDesyncError as e:
            if not handle.done():
                handle.set_exception(e)
            raise

    def _end(self, job_id: int) -> None:
        if job_id not in self._running:
            logger.critical("Queue desync: job #%d completed but does not hold the running slot", job_id)
            raise QueueDesyncError(job_id)

        self._running.discard(job_id)

        # Hand the slot over before returning so a new submission cannot barge in.
        while self._waiting:
            next_id, next_release = self._waiting.popleft()
            if next_release.done():
                continue
            self._running.add(next_id)
            next_release.set_result(None)
            break

    def _forget_waiter(self, job_id: int, release: asyncio.Future) -> None:
        try:
            self._waiting.remove((job_id, release))
        except ValueError:
            pass
