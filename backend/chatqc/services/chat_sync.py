"""LiveChat sync pipeline: fetch, normalize, derive, store, alert."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatqc.core.config import Settings
from chatqc.core.db import get_sessionmaker
from chatqc.core.timeutils import format_istanbul, parse_iso, to_db, utcnow
from chatqc.schemas.sync import SyncResult
from chatqc.services.chat_metrics import is_thread_missed, resolve_first_response_time
from chatqc.services.livechat_client import LiveChatClient
from chatqc.services.missed_chat_alerter import MissedChatAlerter
from chatqc.services.repositories.chat_repository import ChatRepository
from chatqc.services.telegram_notifier import TelegramNotifier
from chatqc.services.thread_normalizer import NormalizedThread, normalize_container

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncWindow:
    start: datetime
    end: datetime
    days: int | None = None


def resolve_window(
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    days: int | None = None,
    default_minutes: int = 20,
    max_days: int = 90,
    now: datetime | None = None,
) -> SyncWindow:
    """
    Pick the sync window: explicit dates, then the ``days`` shorthand, then the
    last ``default_minutes`` minutes.

    Raises:
        ValueError: inconsistent or out-of-range input
    """
    now = now or utcnow()

    if start_date is not None:
        start = _as_utc(start_date)
        end = _as_utc(end_date) if end_date is not None else now
        if start >= end:
            raise ValueError("start_date must be before end_date")
        return SyncWindow(start=start, end=end)

    if end_date is not None:
        raise ValueError("end_date requires start_date")

    if days is not None:
        if not 1 <= days <= max_days:
            raise ValueError(f"days must be between 1 and {max_days}")
        return SyncWindow(start=now - timedelta(days=days), end=now, days=days)

    return SyncWindow(start=now - timedelta(minutes=default_minutes), end=now)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_thread_record(
    container: dict[str, Any],
    thread: NormalizedThread,
    *,
    synced_at: datetime,
) -> dict[str, Any]:
    raw_chat_data = (container.get("properties") or {}).get("raw_chat_data") or {}

    rating_score = raw_chat_data.get("rating_score")
    return {
        "id": thread.thread_id,
        "chat_id": thread.container_id,
        "agent_name": container.get("agent_name") or "Unknown",
        "customer_name": container.get("customer_name") or "Unknown",
        "created_at": to_db(parse_iso(thread.created_at)),
        "ended_at": to_db(parse_iso(raw_chat_data.get("ended_at"))),
        "duration_seconds": raw_chat_data.get("chat_duration_seconds"),
        "message_count": thread.message_count,
        "chat_data": container,
        "status": thread.status,
        "synced_at": to_db(synced_at),
        "first_response_time": resolve_first_response_time(raw_chat_data, thread.messages),
        "rating_score": rating_score,
        "rating_status": raw_chat_data.get("rating_status") or ("rated" if rating_score else "not_rated"),
        "rating_comment": raw_chat_data.get("rating_comment"),
        "has_rating_comment": bool(raw_chat_data.get("has_rating_comment")),
        "complaint_flag": bool(raw_chat_data.get("complaint_flag")),
    }


class ChatSyncPipeline:
    """
    One sync pass over a time window.

    All pages are fetched first; containers are then processed in batches in the
    order the API returned them. Each container is committed on its own, so a
    failure mid-run leaves earlier containers stored.
    """

    def __init__(
        self,
        settings: Settings,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        *,
        livechat_client: LiveChatClient | None = None,
        notifier: TelegramNotifier | None = None,
    ) -> None:
        self._settings = settings
        self._session_maker = session_maker or get_sessionmaker()
        self._livechat_client = livechat_client
        self._notifier = notifier if notifier is not None else TelegramNotifier.from_settings(settings)

    async def run(self, window: SyncWindow) -> SyncResult:
        chats = await self._fetch(window)
        logger.info(f"Processing {len(chats)} chats")

        synced = 0
        new_chats = 0
        alerts_sent = 0

        batch_size = max(1, self._settings.sync_batch_size)
        total_batches = (len(chats) + batch_size - 1) // batch_size

        for batch_index in range(total_batches):
            batch = chats[batch_index * batch_size:(batch_index + 1) * batch_size]
            logger.info(f"Processing batch {batch_index + 1}/{total_batches} ({len(batch)} chats)")

            async with self._session_maker() as session:
                repo = ChatRepository(session)
                alerter = MissedChatAlerter(session, self._notifier)

                for container in batch:
                    is_new, alert_sent = await self._process_container(container, repo, alerter)
                    synced += 1
                    if is_new:
                        new_chats += 1
                    if alert_sent:
                        alerts_sent += 1

            logger.info(f"Batch {batch_index + 1} completed")

        async with self._session_maker() as session:
            repo = ChatRepository(session)
            total_chats = await repo.count_all()
            total_analyzed = await repo.count_analyzed()

        now = utcnow()
        result = SyncResult(
            success=True,
            synced=synced,
            new_chats=new_chats,
            analyzed=0,
            alerts_sent=alerts_sent,
            skipped=0,
            total_chats=total_chats,
            total_analyzed=total_analyzed,
            timestamp=now,
            timestamp_istanbul=format_istanbul(now),
        )
        logger.info(
            f"Sync finished: {synced} synced, {new_chats} new, {alerts_sent} alerts sent, "
            f"{total_chats} chats stored"
        )
        return result

    async def _fetch(self, window: SyncWindow) -> list[dict[str, Any]]:
        if self._livechat_client is not None:
            return await self._livechat_client.fetch_chats(window.start, window.end)

        async with LiveChatClient.from_settings(self._settings) as client:
            return await client.fetch_chats(window.start, window.end)

    async def _process_container(
        self,
        container: dict[str, Any],
        repo: ChatRepository,
        alerter: MissedChatAlerter,
    ) -> tuple[bool, bool]:
        thread = normalize_container(container)
        record = build_thread_record(container, thread, synced_at=utcnow())

        is_new = await repo.save_thread(
            record=record,
            message_rows=[message.to_row() for message in thread.messages],
            agent_name=record["agent_name"],
        )

        alert_sent = False
        if is_thread_missed(thread):
            logger.info(
                f"Missed chat: thread {thread.thread_id} (chat {thread.container_id}), "
                f"{thread.customer_message_count} customer messages, no agent reply"
            )
            alert_sent = await alerter.alert(
                container_id=thread.container_id,
                thread_id=thread.thread_id,
                created_at=parse_iso(thread.created_at),
                agent_name=record["agent_name"],
                customer_name=record["customer_name"],
            )

        return is_new, alert_sent
