import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from chatqc.core.ids import ThreadId
from chatqc.models.chat import Chat
from chatqc.models.chat_message import ChatMessage
from chatqc.models.personnel import Personnel

logger = logging.getLogger(__name__)


def dialect_insert(session: AsyncSession, model):
    """INSERT construct with ON CONFLICT support for the session's database."""
    if session.bind is not None and session.bind.dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


class ChatRepository:
    """Thread, message and personnel writes for the sync pipeline."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, thread_id: ThreadId) -> Chat | None:
        return await self._session.get(Chat, thread_id, populate_existing=True)

    async def get_analyzed_flag(self, thread_id: ThreadId) -> bool | None:
        """``None`` when the thread has never been stored."""
        result = await self._session.execute(select(Chat.analyzed).where(Chat.id == thread_id))
        return result.scalar_one_or_none()

    async def upsert_thread(self, record: dict[str, Any]) -> None:
        """Insert or fully overwrite a thread row. ``analyzed`` is never overwritten."""
        stmt = dialect_insert(self._session, Chat).values(**record)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Chat.id],
            set_={key: stmt.excluded[key] for key in record if key not in ("id", "analyzed")},
        )
        await self._session.execute(stmt)

    async def insert_messages(self, rows: Sequence[dict[str, Any]]) -> None:
        """Messages are immutable: rows whose message_id already exists are skipped."""
        if not rows:
            return
        stmt = dialect_insert(self._session, ChatMessage).values(list(rows))
        stmt = stmt.on_conflict_do_nothing(index_elements=[ChatMessage.message_id])
        await self._session.execute(stmt)

    async def touch_personnel(self, name: str) -> None:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        stmt = dialect_insert(self._session, Personnel).values(name=name, created_at=now, updated_at=now)
        stmt = stmt.on_conflict_do_nothing(index_elements=[Personnel.name])
        await self._session.execute(stmt)

    async def save_thread(
        self,
        *,
        record: dict[str, Any],
        message_rows: Sequence[dict[str, Any]],
        agent_name: str,
    ) -> bool:
        """
        Persist one thread with its messages and agent in a single transaction.

        The stored ``analyzed`` flag is carried forward.

        Returns:
            True if the thread was not stored before
        """
        thread_id = record["id"]
        try:
            existing_analyzed = await self.get_analyzed_flag(thread_id)
            record = {**record, "analyzed": bool(existing_analyzed)}

            await self.upsert_thread(record)
            await self.insert_messages(message_rows)
            await self.touch_personnel(agent_name)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        return existing_analyzed is None

    async def count_all(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(Chat))
        return result.scalar_one()

    async def count_analyzed(self) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(Chat).where(Chat.analyzed.is_(True))
        )
        return result.scalar_one()

    async def list_messages(self, thread_id: ThreadId) -> Sequence[ChatMessage]:
        result = await self._session.execute(
            select(ChatMessage)
            .where(ChatMessage.chat_id == thread_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        return result.scalars().all()
