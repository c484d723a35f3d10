"""Scheduled tasks"""

import logging

from chatqc.core.config import settings
from chatqc.core.db import get_sessionmaker
from chatqc.services.alert_delivery import deliver_pending_alerts
from chatqc.services.chat_sync import resolve_window
from chatqc.services.sync_jobs import get_sync_job_manager
from chatqc.services.telegram_notifier import TelegramNotifier

logger = logging.getLogger(__name__)


async def periodic_sync_job() -> None:
    """Queue a sync of the default window unless one is already pending or running."""
    manager = get_sync_job_manager()
    try:
        if await manager.has_active_job():
            logger.info("A sync job is already running, skipping this round")
            return

        window = resolve_window(
            default_minutes=settings.sync_default_window_minutes,
            max_days=settings.sync_max_days,
        )
        job = await manager.start_background(window)
        logger.info(f"Scheduled sync job {job.id}")
    except Exception as e:
        logger.error(f"Failed to schedule sync job: {e}", exc_info=True)


async def deliver_alerts_job() -> None:
    """Retry Telegram delivery of missed chat alerts."""
    notifier = TelegramNotifier.from_settings(settings)
    if notifier is None:
        logger.debug("Telegram is not configured, skipping alert delivery")
        return

    try:
        counts = await deliver_pending_alerts(
            get_sessionmaker(),
            notifier,
            limit=settings.alert_delivery_batch_size,
        )
        if counts["sent"] or counts["failed"]:
            logger.info(f"Alert delivery: {counts['sent']} sent, {counts['failed']} failed")
    except Exception as e:
        logger.error(f"Alert delivery failed: {e}", exc_info=True)
