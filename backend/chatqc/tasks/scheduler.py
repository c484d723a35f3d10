from apscheduler.schedulers.asyncio import AsyncIOScheduler

from chatqc.core.config import settings
from chatqc.tasks import jobs


class SchedulerWrapper:
    def __init__(self) -> None:
        self._scheduler = AsyncIOScheduler()
        self._sync_job_id = "periodic_sync"
        self._delivery_job_id = "deliver_alerts"
        self._is_configured = False

    def _configure_jobs(self) -> None:
        if self._is_configured:
            return

        self._scheduler.add_job(
            jobs.periodic_sync_job,
            "interval",
            seconds=settings.sync_interval_seconds,
            id=self._sync_job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._scheduler.add_job(
            jobs.deliver_alerts_job,
            "interval",
            seconds=settings.alert_delivery_interval_seconds,
            id=self._delivery_job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self._is_configured = True

    @property
    def running(self) -> bool:
        return self._scheduler.running

    async def start(self) -> None:
        if not self._scheduler.running:
            self._configure_jobs()
            self._scheduler.start()

    async def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)


scheduler = SchedulerWrapper()
