from datetime import datetime

import pytest
from sqlalchemy import func, select, update

from chatqc.models.chat import Chat
from chatqc.models.chat_message import ChatMessage
from chatqc.models.personnel import Personnel
from chatqc.services.repositories.chat_repository import ChatRepository


def _record(thread_id="T1", **overrides):
    record = {
        "id": thread_id,
        "chat_id": "C1",
        "agent_name": "Ayşe Demir",
        "customer_name": "Mehmet",
        "created_at": datetime(2024, 1, 1, 10, 0),
        "ended_at": None,
        "duration_seconds": None,
        "message_count": 1,
        "chat_data": {"id": "C1"},
        "status": "active",
        "synced_at": datetime(2024, 1, 1, 11, 0),
        "first_response_time": None,
        "rating_score": None,
        "rating_status": "not_rated",
        "rating_comment": None,
        "has_rating_comment": False,
        "complaint_flag": False,
    }
    record.update(overrides)
    return record


def _message(message_id, text="Merhaba", thread_id="T1"):
    return {
        "chat_id": thread_id,
        "message_id": message_id,
        "author_id": "visitor",
        "author_type": "customer",
        "text": text,
        "created_at": datetime(2024, 1, 1, 10, 0),
        "is_system": False,
    }


@pytest.mark.asyncio
async def test_save_thread_reports_new_then_existing(db_session):
    repo = ChatRepository(db_session)

    first = await repo.save_thread(record=_record(), message_rows=[_message("m1")], agent_name="Ayşe Demir")
    second = await repo.save_thread(record=_record(), message_rows=[_message("m1")], agent_name="Ayşe Demir")

    assert first is True
    assert second is False
    assert await repo.count_all() == 1


@pytest.mark.asyncio
async def test_resync_overwrites_fields_but_keeps_analyzed(db_session):
    repo = ChatRepository(db_session)
    await repo.save_thread(record=_record(), message_rows=[], agent_name="Ayşe Demir")

    await db_session.execute(update(Chat).where(Chat.id == "T1").values(analyzed=True))
    await db_session.commit()

    await repo.save_thread(
        record=_record(status="archived", message_count=3, analyzed=False),
        message_rows=[],
        agent_name="Ayşe Demir",
    )

    chat = await repo.get("T1")
    assert chat.analyzed is True
    assert chat.status == "archived"
    assert chat.message_count == 3
    assert await repo.count_analyzed() == 1


@pytest.mark.asyncio
async def test_existing_messages_are_never_overwritten(db_session):
    repo = ChatRepository(db_session)
    await repo.save_thread(record=_record(), message_rows=[_message("m1", "ilk")], agent_name="Ayşe Demir")

    await repo.save_thread(
        record=_record(),
        message_rows=[_message("m1", "değişti"), _message("m2", "yeni")],
        agent_name="Ayşe Demir",
    )

    messages = await repo.list_messages("T1")
    assert [(m.message_id, m.text) for m in messages] == [("m1", "ilk"), ("m2", "yeni")]


@pytest.mark.asyncio
async def test_personnel_rows_are_created_once_and_left_alone(db_session):
    repo = ChatRepository(db_session)
    await repo.save_thread(record=_record(), message_rows=[], agent_name="Ayşe Demir")

    await db_session.execute(update(Personnel).where(Personnel.name == "Ayşe Demir").values(total_chats=42))
    await db_session.commit()

    await repo.save_thread(record=_record("T2"), message_rows=[], agent_name="Ayşe Demir")

    result = await db_session.execute(select(Personnel))
    rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].total_chats == 42


@pytest.mark.asyncio
async def test_empty_message_batch_is_a_noop(db_session):
    repo = ChatRepository(db_session)
    await repo.insert_messages([])
    await db_session.commit()

    count = (await db_session.execute(select(func.count()).select_from(ChatMessage))).scalar_one()
    assert count == 0
