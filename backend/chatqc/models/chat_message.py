from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from chatqc.core.db import Base


class ChatMessage(Base):
    """One utterance inside a thread. Immutable once stored."""

    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(String(255), unique=True, nullable=False)
    chat_id = Column(String(255), nullable=False, index=True)  # thread id, not container id
    author_id = Column(String(255), nullable=False)
    author_type = Column(String(20), nullable=False)  # agent, customer, system
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    inserted_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)
