from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chatqc.core.ids import ThreadId
from chatqc.models.alert import Alert


class AlertRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find(self, thread_id: ThreadId, alert_type: str) -> Alert | None:
        result = await self._session.execute(
            select(Alert)
            .where(Alert.chat_id == thread_id)
            .where(Alert.alert_type == alert_type)
            .limit(1)
        )
        return result.scalars().first()

    async def create(
        self,
        *,
        thread_id: ThreadId,
        alert_type: str,
        severity: str,
        message: str,
        analysis_id: str | None = None,
    ) -> Alert:
        alert = Alert(
            chat_id=thread_id,
            analysis_id=analysis_id,
            alert_type=alert_type,
            severity=severity,
            message=message,
            sent_to_telegram=False,
        )
        self._session.add(alert)
        await self._session.commit()
        await self._session.refresh(alert)
        return alert

    async def mark_sent(self, alert_id: int, telegram_message_id: str | None) -> None:
        await self._session.execute(
            update(Alert)
            .where(Alert.id == alert_id)
            .values(sent_to_telegram=True, telegram_message_id=telegram_message_id)
        )
        await self._session.commit()

    async def list_undelivered(self, *, alert_type: str, limit: int) -> Sequence[Alert]:
        result = await self._session.execute(
            select(Alert)
            .where(Alert.alert_type == alert_type)
            .where(Alert.sent_to_telegram.is_(False))
            .order_by(Alert.created_at.asc(), Alert.id.asc())
            .limit(limit)
        )
        return result.scalars().all()
