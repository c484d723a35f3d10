"""Re-sends missed chat alerts that could not be relayed during sync."""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatqc.models.alert import MISSED_CHAT
from chatqc.services.repositories.alert_repository import AlertRepository
from chatqc.services.telegram_notifier import TelegramNotifier

logger = logging.getLogger(__name__)

SEND_PAUSE_SECONDS = 0.5


async def deliver_pending_alerts(
    session_maker: async_sessionmaker[AsyncSession],
    notifier: TelegramNotifier,
    *,
    limit: int = 10,
) -> dict[str, int]:
    async with session_maker() as session:
        repo = AlertRepository(session)
        alerts = await repo.list_undelivered(alert_type=MISSED_CHAT, limit=limit)

        if not alerts:
            return {"sent": 0, "failed": 0}

        logger.info(f"Delivering {len(alerts)} pending missed chat alerts")
        sent = 0
        failed = 0

        for index, alert in enumerate(alerts):
            telegram_message_id = await notifier.send_message(alert.message)
            if telegram_message_id is None:
                failed += 1
            else:
                await repo.mark_sent(alert.id, telegram_message_id or None)
                sent += 1

            if index < len(alerts) - 1:
                await asyncio.sleep(SEND_PAUSE_SECONDS)

        logger.info(f"Alert delivery finished: {sent} sent, {failed} failed")
        return {"sent": sent, "failed": failed}
