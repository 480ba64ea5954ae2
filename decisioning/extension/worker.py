"""Single-consumer job queue: every cache read and write runs on this worker.

Producers on the event-loop thread use submit(); producers on any other
thread use submit_threadsafe(). The queue hand-off is the only
synchronization point; jobs themselves run strictly one at a time.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from decisioning.infra.errors import WorkerError

logger = structlog.get_logger()


@dataclass
class _Job:
    fn: Callable[..., Any]
    args: tuple[Any, ...]
    future: asyncio.Future | concurrent.futures.Future | None


class SerialWorker:
    """Drains jobs in submission order on one asyncio task."""

    def __init__(self, name: str = "decisioning-worker") -> None:
        self._name = name
        self._queue: asyncio.Queue[_Job | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopping

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name=self._name)
        logger.info("worker_started", worker=self._name)

    async def stop(self) -> None:
        """Run every job already queued, then exit."""
        if self._task is None or self._queue is None:
            return
        if not self._stopping:
            self._stopping = True
            self._queue.put_nowait(None)
        await self._task
        self._task = None
        # Jobs handed over from other threads after the stop sentinel never run
        while not self._queue.empty():
            job = self._queue.get_nowait()
            if job is not None and job.future is not None and not job.future.done():
                job.future.cancel()
        logger.info("worker_stopped", worker=self._name)

    async def submit(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Queue fn(*args) and wait for its result. Call from the loop thread."""
        self._ensure_running()
        future = self._loop.create_future()
        self._queue.put_nowait(_Job(fn, args, future))
        return await future

    def submit_threadsafe(
        self, fn: Callable[..., Any], *args: Any
    ) -> concurrent.futures.Future:
        """Queue fn(*args) from any thread; returns a concurrent future."""
        self._ensure_running()
        future: concurrent.futures.Future = concurrent.futures.Future()
        job = _Job(fn, args, future)
        try:
            caller_loop = asyncio.get_running_loop()
        except RuntimeError:
            caller_loop = None
        if caller_loop is self._loop:
            # Same thread: enqueue now so submission order is preserved
            self._queue.put_nowait(job)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, job)
        return future

    def _ensure_running(self) -> None:
        if not self.running or self._loop is None or self._queue is None:
            raise WorkerError(f"Worker '{self._name}' is not running")

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            if job is None:
                break
            await self._execute(job)

    async def _execute(self, job: _Job) -> None:
        try:
            result = job.fn(*job.args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("worker_job_failed", worker=self._name, job=_job_name(job.fn))
            if job.future is not None and not job.future.done():
                job.future.set_exception(exc)
            return
        if job.future is not None and not job.future.done():
            job.future.set_result(result)


def _job_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", repr(fn))
