from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from chatqc.models.alert import MISSED_CHAT, Alert
from chatqc.services.missed_chat_alerter import MissedChatAlerter, render_missed_chat_message

CREATED_AT = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def _kwargs(thread_id="T1"):
    return {
        "container_id": "C1",
        "thread_id": thread_id,
        "created_at": CREATED_AT,
        "agent_name": "Ayşe Demir",
        "customer_name": "Mehmet",
    }


async def _alerts(session):
    result = await session.execute(
        select(Alert).order_by(Alert.id).execution_options(populate_existing=True)
    )
    return result.scalars().all()


def test_message_template_names_both_ids_and_local_time():
    message = render_missed_chat_message(**_kwargs())

    assert message.startswith("⚠️ KAÇIRILMIŞ CHAT")
    assert "Chat ID: C1" in message
    assert "Thread ID: T1" in message
    assert "Tarih: 01.01.2024 13:00" in message
    assert "Temsilci: Ayşe Demir" in message
    assert "Müşteri: Mehmet" in message


@pytest.mark.asyncio
async def test_alert_is_created_once_per_thread(db_session):
    notifier = AsyncMock()
    notifier.send_message = AsyncMock(return_value="555")
    alerter = MissedChatAlerter(db_session, notifier)

    first = await alerter.alert(**_kwargs())
    second = await alerter.alert(**_kwargs())

    alerts = await _alerts(db_session)
    assert first is True
    assert second is False
    assert len(alerts) == 1
    assert alerts[0].alert_type == MISSED_CHAT
    assert alerts[0].chat_id == "T1"
    assert alerts[0].severity == "high"
    assert alerts[0].sent_to_telegram is True
    assert alerts[0].telegram_message_id == "555"
    notifier.send_message.assert_awaited_once()


@pytest.mark.asyncio
async def test_relay_failure_leaves_alert_undelivered(db_session):
    notifier = AsyncMock()
    notifier.send_message = AsyncMock(return_value=None)
    alerter = MissedChatAlerter(db_session, notifier)

    sent = await alerter.alert(**_kwargs())

    alerts = await _alerts(db_session)
    assert sent is False
    assert len(alerts) == 1
    assert alerts[0].sent_to_telegram is False
    assert alerts[0].telegram_message_id is None


@pytest.mark.asyncio
async def test_without_notifier_alert_is_only_stored(db_session):
    alerter = MissedChatAlerter(db_session, None)

    assert await alerter.alert(**_kwargs()) is False
    assert len(await _alerts(db_session)) == 1


@pytest.mark.asyncio
async def test_relay_marks_only_its_own_thread(db_session):
    notifier = AsyncMock()
    notifier.send_message = AsyncMock(side_effect=[None, "777"])
    alerter = MissedChatAlerter(db_session, notifier)

    await alerter.alert(**_kwargs("T1"))
    await alerter.alert(**_kwargs("T2"))

    alerts = {a.chat_id: a for a in await _alerts(db_session)}
    assert alerts["T1"].sent_to_telegram is False
    assert alerts["T2"].sent_to_telegram is True
