"""Missed chat alerts"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from chatqc.core.ids import ContainerId, ThreadId
from chatqc.core.timeutils import format_istanbul
from chatqc.models.alert import MISSED_CHAT
from chatqc.services.repositories.alert_repository import AlertRepository
from chatqc.services.telegram_notifier import TelegramNotifier

logger = logging.getLogger(__name__)


def render_missed_chat_message(
    *,
    container_id: ContainerId,
    thread_id: ThreadId,
    created_at: datetime | None,
    agent_name: str,
    customer_name: str,
) -> str:
    chat_date = format_istanbul(created_at, "%d.%m.%Y %H:%M") if created_at else "-"
    return (
        "⚠️ KAÇIRILMIŞ CHAT\n\n"
        f"Chat ID: {container_id}\n"
        f"Thread ID: {thread_id}\n"
        f"Tarih: {chat_date}\n"
        f"Temsilci: {agent_name}\n"
        f"Müşteri: {customer_name}\n\n"
        "Bu chat müşteri tarafından başlatıldı ancak hiç yanıt alınamadı."
    )


class MissedChatAlerter:
    """Creates at most one missed_chat alert per thread and relays it once."""

    def __init__(self, session: AsyncSession, notifier: TelegramNotifier | None) -> None:
        self._alerts = AlertRepository(session)
        self._notifier = notifier

    async def alert(
        self,
        *,
        container_id: ContainerId,
        thread_id: ThreadId,
        created_at: datetime | None,
        agent_name: str,
        customer_name: str,
    ) -> bool:
        """
        Returns:
            True if a new alert was relayed to Telegram
        """
        existing = await self._alerts.find(thread_id, MISSED_CHAT)
        if existing is not None:
            logger.debug(f"Missed chat alert for thread {thread_id} already exists")
            return False

        message = render_missed_chat_message(
            container_id=container_id,
            thread_id=thread_id,
            created_at=created_at,
            agent_name=agent_name,
            customer_name=customer_name,
        )
        alert = await self._alerts.create(
            thread_id=thread_id,
            alert_type=MISSED_CHAT,
            severity="high",
            message=message,
        )
        logger.info(f"Created missed chat alert {alert.id} for thread {thread_id} (chat {container_id})")

        if self._notifier is None:
            return False

        telegram_message_id = await self._notifier.send_message(message)
        if telegram_message_id is None:
            # left undelivered for the delivery sweep
            logger.warning(f"Could not relay missed chat alert {alert.id}")
            return False

        await self._alerts.mark_sent(alert.id, telegram_message_id or None)
        return True
