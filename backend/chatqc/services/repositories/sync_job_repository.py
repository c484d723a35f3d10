from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chatqc.core.exceptions import InvalidJobTransition
from chatqc.core.timeutils import to_db
from chatqc.models.sync_job import SyncJob, SyncJobStatus

UNFINISHED = (SyncJobStatus.PENDING.value, SyncJobStatus.PROCESSING.value)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SyncJobRepository:
    """Sync job rows. Each status change is a conditional UPDATE on the expected current status."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        start_date: datetime,
        end_date: datetime,
        days: int | None = None,
    ) -> SyncJob:
        job = SyncJob(
            status=SyncJobStatus.PENDING.value,
            start_date=to_db(start_date),
            end_date=to_db(end_date),
            days=days,
        )
        self._session.add(job)
        await self._session.commit()
        await self._session.refresh(job)
        return job

    async def get(self, job_id: int) -> SyncJob | None:
        return await self._session.get(SyncJob, job_id, populate_existing=True)

    async def has_active(self) -> bool:
        result = await self._session.execute(
            select(SyncJob.id)
            .where(SyncJob.status.in_(UNFINISHED))
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def mark_processing(self, job_id: int) -> None:
        await self._transition(
            job_id,
            SyncJobStatus.PENDING,
            SyncJobStatus.PROCESSING,
            started_at=_now(),
        )

    async def mark_completed(self, job_id: int, result: dict[str, Any]) -> None:
        await self._transition(
            job_id,
            SyncJobStatus.PROCESSING,
            SyncJobStatus.COMPLETED,
            result=result,
            completed_at=_now(),
        )

    async def mark_failed(self, job_id: int, error: str) -> None:
        await self._transition(
            job_id,
            SyncJobStatus.PROCESSING,
            SyncJobStatus.FAILED,
            error=error,
            completed_at=_now(),
        )

    async def mark_interrupted(self, job_id: int, error: str) -> bool:
        """Fail a job that has not finished yet. False if it already completed or failed."""
        result = await self._session.execute(
            update(SyncJob)
            .where(SyncJob.id == job_id)
            .where(SyncJob.status.in_(UNFINISHED))
            .values(status=SyncJobStatus.FAILED.value, error=error, completed_at=_now())
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        return result.rowcount > 0

    async def fail_unfinished(self, error: str) -> int:
        """Fail every pending or processing job. Returns how many rows changed."""
        result = await self._session.execute(
            update(SyncJob)
            .where(SyncJob.status.in_(UNFINISHED))
            .values(status=SyncJobStatus.FAILED.value, error=error, completed_at=_now())
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        return result.rowcount

    async def _transition(
        self,
        job_id: int,
        from_status: SyncJobStatus,
        to_status: SyncJobStatus,
        **values: Any,
    ) -> None:
        result = await self._session.execute(
            update(SyncJob)
            .where(SyncJob.id == job_id)
            .where(SyncJob.status == from_status.value)
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()

        if result.rowcount == 0:
            job = await self.get(job_id)
            raise InvalidJobTransition(job_id, job.status if job else None, to_status.value)
