"""Queue worker draining optimization units."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

import structlog

from ..domain.models import OptimizationJob
from ..exceptions import MediaOptError, OptimizationError
from ..logging import bind_media_context, clear_media_context
from ..optimization.factory import ProcessFactory
from ..optimization.process import OptimizationProcess
from ..queue.jobs import OptimizationQueue

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class OptimizationWorker:
    """Picks one unit at a time and optimizes its sizes in the stored order."""

    def __init__(
        self,
        *,
        queue: OptimizationQueue,
        factory: ProcessFactory,
        sleep: Callable[[float], Any] | None = None,
        poll_interval: float = 1.0,
        stale_after: float | None = 3600.0,
    ) -> None:
        self.queue = queue
        self.factory = factory
        self._sleep = self._wrap_sleep(sleep)
        self._poll_interval = poll_interval
        self._stale_after = stale_after

    @staticmethod
    def _wrap_sleep(
        sleep: Callable[[float], Any] | None,
    ) -> Callable[[float], Awaitable[None]]:
        if sleep is None:
            return asyncio.sleep

        async def _async_sleep(seconds: float) -> None:
            result = sleep(seconds)
            if inspect.isawaitable(result):
                await result

        return _async_sleep

    @staticmethod
    async def _run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Execute ``func`` in a worker thread to avoid blocking the event loop."""

        return await asyncio.to_thread(func, *args, **kwargs)

    async def run_once(self, *, shutdown_event: asyncio.Event | None = None) -> bool:
        """Process at most one unit; return whether one was found."""

        if shutdown_event is not None and shutdown_event.is_set():
            return False

        await self._release_stale()
        job = await self._run_sync(self.queue.acquire_next)
        if job is None:
            return False

        await self.process_job(job)
        return True

    async def _release_stale(self) -> None:
        # Units left running by a crashed worker go back to pending.
        if self._stale_after is None:
            return
        released = await self._run_sync(self.queue.release_stale, older_than=timedelta(seconds=self._stale_after))
        for job in released:
            logger.warning("worker.job.released", job_id=job.id, media_id=job.media_id)

    async def run_forever(self, *, shutdown_event: asyncio.Event) -> None:
        """Continuously process units until ``shutdown_event`` is set."""

        try:
            while not shutdown_event.is_set():
                has_job = await self.run_once(shutdown_event=shutdown_event)
                if not has_job:
                    await self._sleep(self._poll_interval)
        except asyncio.CancelledError:
            logger.debug("worker.cancelled")
            raise

    async def process_job(self, job: OptimizationJob) -> OptimizationJob:
        bind_media_context(context=job.context, media_id=job.media_id)
        try:
            return await self._process_job(job)
        except Exception as exc:
            logger.exception("worker.job.crashed", job_id=job.id)
            return await self._run_sync(self.queue.mark_failed, job, str(exc) or type(exc).__name__)
        finally:
            clear_media_context()

    async def _process_job(self, job: OptimizationJob) -> OptimizationJob:
        try:
            process = await self._run_sync(self.factory.get_process, job.context, job.media_id)
        except OptimizationError as exc:
            logger.warning("worker.job.invalid_media", job_id=job.id, code=exc.code)
            return await self._run_sync(self.queue.mark_failed, job, exc.message)

        await self._run_sync(self.task_before, process, job)
        try:
            for size in job.sizes:
                await self._optimize_size(process, job, size)
        except MediaOptError as exc:
            logger.error("worker.job.failed", job_id=job.id, error=str(exc))
            return await self._run_sync(self.queue.mark_failed, job, str(exc))
        finally:
            await self._run_sync(self.task_after, process, job)

        logger.info("worker.job.done", job_id=job.id, sizes=len(job.sizes))
        return await self._run_sync(self.queue.mark_done, job)

    async def _optimize_size(self, process: OptimizationProcess, job: OptimizationJob, size: str) -> None:
        try:
            record = await self._run_sync(process.optimize_size, size, job.optimization_level)
        except OptimizationError as exc:
            # Validation failures leave the stored record untouched.
            logger.info("worker.size.skipped", job_id=job.id, size=size, code=exc.code)
            return
        logger.info("worker.size.processed", job_id=job.id, size=size, status=record.get("status"))

    @staticmethod
    def task_before(process: OptimizationProcess, job: OptimizationJob) -> None:
        # The lock may have expired while the unit was waiting.
        if not process.is_locked():
            process.lock()

    @staticmethod
    def task_after(process: OptimizationProcess, job: OptimizationJob) -> None:
        if job.data.get("delete_backup"):
            process.delete_backup()
        process.unlock()


__all__ = ["OptimizationWorker"]
