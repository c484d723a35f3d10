"""Turns a raw LiveChat container into a thread record plus its messages."""

import logging
from dataclasses import dataclass, field
from typing import Any

from chatqc.core.ids import ContainerId, ThreadId
from chatqc.core.timeutils import parse_iso, to_db

logger = logging.getLogger(__name__)

WELCOME_PHRASES = (
    "hoş geldiniz",
    "merhaba",
    "nasıl yardımcı",
    "size nasıl",
    "yardımcı olabilirim",
)
WELCOME_MAX_LENGTH = 150

STATUS_ACTIVE = "active"
STATUS_ARCHIVED = "archived"


def is_auto_welcome_message(text: str, is_first_agent_message: bool) -> bool:
    """Greeting templates count as welcome messages only as the first agent message."""
    if not is_first_agent_message:
        return False
    lower_text = text.lower()
    return any(phrase in lower_text for phrase in WELCOME_PHRASES) and len(text) < WELCOME_MAX_LENGTH


@dataclass
class NormalizedMessage:
    chat_id: ThreadId
    message_id: str
    author_id: str
    author_type: str
    text: str
    created_at: str | None
    is_system: bool = False

    def to_row(self) -> dict[str, Any]:
        return {
            "chat_id": self.chat_id,
            "message_id": self.message_id,
            "author_id": self.author_id,
            "author_type": self.author_type,
            "text": self.text,
            "created_at": to_db(parse_iso(self.created_at)),
            "is_system": self.is_system,
        }


@dataclass
class NormalizedThread:
    thread_id: ThreadId
    container_id: ContainerId
    status: str
    created_at: str | None = None
    messages: list[NormalizedMessage] = field(default_factory=list)
    message_count: int = 0
    agent_reply_count: int = 0
    customer_message_count: int = 0


def _iter_events(full_chat_data: dict[str, Any]) -> list[dict[str, Any]]:
    all_messages = full_chat_data.get("all_messages") or []
    if all_messages:
        return [event for event in all_messages if isinstance(event, dict)]

    # Older payloads only carry the latest event of each type
    events = []
    for entry in (full_chat_data.get("last_event_per_type") or {}).values():
        event = entry.get("event") if isinstance(entry, dict) else None
        if isinstance(event, dict):
            events.append(event)
    return events


def normalize_container(container: dict[str, Any]) -> NormalizedThread:
    properties = container.get("properties") or {}
    full_chat_data = properties.get("full_chat_data") or {}
    last_thread_summary = full_chat_data.get("last_thread_summary") or {}

    container_id = ContainerId(str(container["id"]))
    thread_id = ThreadId(str(last_thread_summary.get("id") or container_id))
    status = STATUS_ARCHIVED if last_thread_summary.get("active") is False else STATUS_ACTIVE

    thread = NormalizedThread(
        thread_id=thread_id,
        container_id=container_id,
        status=status,
        created_at=last_thread_summary.get("created_at") or container.get("created_at"),
    )
    first_agent_message_seen = False

    for event in _iter_events(full_chat_data):
        text = event.get("text")
        if not text:
            continue
        if not event.get("id"):
            logger.warning(f"Skipping event without id in thread {thread_id}")
            continue

        event_type = event.get("type")
        if event_type == "message":
            author_id = str(event.get("author_id") or "")
            author_type = "agent" if "@" in author_id else "customer"

            welcome_flag = ((event.get("properties") or {}).get("lc2") or {}).get("welcome_message") is True
            is_first_agent_message = author_type == "agent" and not first_agent_message_seen
            is_welcome = welcome_flag or is_auto_welcome_message(text, is_first_agent_message)

            if author_type == "agent":
                first_agent_message_seen = True
                if not is_welcome:
                    thread.agent_reply_count += 1
            else:
                thread.customer_message_count += 1

            thread.message_count += 1
            thread.messages.append(
                NormalizedMessage(
                    chat_id=thread_id,
                    message_id=str(event.get("id")),
                    author_id=author_id,
                    author_type=author_type,
                    text=text,
                    created_at=event.get("created_at"),
                )
            )
        elif event_type == "system_message":
            thread.messages.append(
                NormalizedMessage(
                    chat_id=thread_id,
                    message_id=str(event.get("id")),
                    author_id="system",
                    author_type="system",
                    text=text,
                    created_at=event.get("created_at"),
                    is_system=True,
                )
            )

    logger.debug(
        f"Thread {thread_id} (chat {container_id}): {thread.customer_message_count} customer, "
        f"{thread.agent_reply_count} agent replies, status {status}"
    )
    return thread
