"""Background sync jobs

A job row is created as ``pending`` and handed to an asyncio task in this process.
The task moves it to ``processing``, runs the pipeline and ends in ``completed`` or
``failed``. A failed job is never re-run; a new request creates a new job.

Pagination has no page cap, so a job over a very wide window can stay in
``processing`` for a long time. Callers poll the job row to see that.

Jobs cancelled at shutdown, or left unfinished by a crashed process, end as
``failed`` with the error ``interrupted``.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatqc.core.config import Settings
from chatqc.core.db import get_sessionmaker
from chatqc.models.sync_job import SyncJob
from chatqc.schemas.sync import SyncResult
from chatqc.services.chat_sync import ChatSyncPipeline, SyncWindow
from chatqc.services.repositories.sync_job_repository import SyncJobRepository

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[], ChatSyncPipeline]

INTERRUPTED = "interrupted"


class SyncJobManager:
    def __init__(
        self,
        settings: Settings,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        pipeline_factory: PipelineFactory | None = None,
    ) -> None:
        self._settings = settings
        self._session_maker = session_maker or get_sessionmaker()
        self._pipeline_factory = pipeline_factory or (
            lambda: ChatSyncPipeline(self._settings, self._session_maker)
        )
        self._tasks: set[asyncio.Task] = set()

    async def create_job(self, window: SyncWindow) -> SyncJob:
        async with self._session_maker() as session:
            job = await SyncJobRepository(session).create(
                start_date=window.start,
                end_date=window.end,
                days=window.days,
            )
        logger.info(f"Created sync job {job.id} for {window.start.isoformat()} - {window.end.isoformat()}")
        return job

    def submit(self, job_id: int) -> asyncio.Task:
        """Schedule a pending job on the running event loop without waiting for it."""
        task = asyncio.create_task(self._run_in_background(job_id), name=f"sync-job-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def start_background(self, window: SyncWindow) -> SyncJob:
        job = await self.create_job(window)
        self.submit(job.id)
        return job

    async def run_inline(self, window: SyncWindow) -> SyncResult:
        """Same pipeline as a job, without a job row."""
        return await self._pipeline_factory().run(window)

    async def execute(self, job_id: int) -> SyncResult:
        """
        Run a pending job to completion.

        Raises:
            InvalidJobTransition: the job is not pending
            Exception: whatever made the pipeline fail, after the job is marked failed
        """
        async with self._session_maker() as session:
            repo = SyncJobRepository(session)
            await repo.mark_processing(job_id)
            job = await repo.get(job_id)
            window = SyncWindow(
                start=job.start_date.replace(tzinfo=timezone.utc),
                end=job.end_date.replace(tzinfo=timezone.utc),
                days=job.days,
            )

        logger.info(f"Sync job {job_id} is processing")

        try:
            result = await self._pipeline_factory().run(window)
        except Exception as e:
            logger.error(f"Sync job {job_id} failed: {e}", exc_info=True)
            async with self._session_maker() as session:
                await SyncJobRepository(session).mark_failed(job_id, str(e) or e.__class__.__name__)
            raise

        async with self._session_maker() as session:
            await SyncJobRepository(session).mark_completed(job_id, result.model_dump(mode="json"))
        logger.info(f"Sync job {job_id} completed")
        return result

    async def _run_in_background(self, job_id: int) -> None:
        try:
            await self.execute(job_id)
        except asyncio.CancelledError:
            logger.warning(f"Sync job {job_id} was interrupted")
            async with self._session_maker() as session:
                await SyncJobRepository(session).mark_interrupted(job_id, INTERRUPTED)
            raise
        except Exception as e:
            # already recorded on the job row
            logger.debug(f"Background sync job {job_id} ended with error: {e}")

    async def get_job(self, job_id: int) -> SyncJob | None:
        async with self._session_maker() as session:
            return await SyncJobRepository(session).get(job_id)

    async def has_active_job(self) -> bool:
        async with self._session_maker() as session:
            return await SyncJobRepository(session).has_active()

    async def recover_interrupted(self) -> int:
        """Fail jobs left pending or processing by a previous process. Call once at startup."""
        async with self._session_maker() as session:
            count = await SyncJobRepository(session).fail_unfinished(INTERRUPTED)
        if count:
            logger.warning(f"Marked {count} unfinished sync jobs as failed")
        return count

    async def shutdown(self) -> None:
        """Cancel running job tasks. Each one marks its job failed before exiting."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"Cancelling {len(tasks)} running sync jobs")
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait for every submitted job task to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


_sync_job_manager: SyncJobManager | None = None


def get_sync_job_manager() -> SyncJobManager:
    global _sync_job_manager
    if _sync_job_manager is None:
        from chatqc.core.config import settings

        _sync_job_manager = SyncJobManager(settings)
    return _sync_job_manager


async def shutdown_sync_job_manager() -> None:
    global _sync_job_manager
    if _sync_job_manager is not None:
        await _sync_job_manager.shutdown()
    _sync_job_manager = None
