"""
Pytest fixtures for the sync pipeline tests.

Provides:
- In-memory SQLite engine and session factory
- Test settings (no .env, no delays)
- LiveChat container factories
"""

from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chatqc.core.config import Settings
from chatqc.core.db import Base, import_models


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest_asyncio.fixture
async def async_engine():
    """Create async SQLite engine for testing."""
    import_models()
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


# =============================================================================
# SETTINGS FIXTURE
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        livechat_base_url="https://livechat.test",
        livechat_api_key="test-api-key",
        telegram_bot_token=None,
        telegram_chat_id=None,
        sync_page_delay_seconds=0,
        http_retry_delay_seconds=0,
        sync_batch_size=50,
    )


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def message_event(
    event_id: str,
    author_id: str,
    text: str,
    created_at: str,
    *,
    event_type: str = "message",
    welcome_flag: bool = False,
) -> dict[str, Any]:
    event = {
        "id": event_id,
        "type": event_type,
        "author_id": author_id,
        "text": text,
        "created_at": created_at,
    }
    if welcome_flag:
        event["properties"] = {"lc2": {"welcome_message": True}}
    return event


def make_container(
    *,
    container_id: str = "C1",
    thread_id: str | None = "T1",
    active: bool = False,
    events: list[dict[str, Any]] | None = None,
    raw_chat_data: dict[str, Any] | None = None,
    agent_name: str = "Ayşe Demir",
    customer_name: str = "Mehmet",
    created_at: str = "2024-01-01T10:00:00Z",
) -> dict[str, Any]:
    summary: dict[str, Any] = {"active": active, "created_at": created_at}
    if thread_id is not None:
        summary["id"] = thread_id
    return {
        "id": container_id,
        "agent_name": agent_name,
        "customer_name": customer_name,
        "created_at": created_at,
        "properties": {
            "full_chat_data": {
                "all_messages": events or [],
                "last_thread_summary": summary,
            },
            "raw_chat_data": raw_chat_data or {},
        },
    }


@pytest.fixture
def container_factory():
    return make_container


@pytest.fixture
def event_factory():
    return message_event
