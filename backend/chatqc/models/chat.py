"""Chat thread model"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text

from chatqc.core.db import Base


class Chat(Base):
    """One conversation thread. ``id`` is the thread id, ``chat_id`` the LiveChat container id."""

    __tablename__ = "chats"

    id = Column(String(255), primary_key=True)
    chat_id = Column(String(255), nullable=False, index=True)

    agent_name = Column(String(255), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)

    created_at = Column(DateTime, nullable=True, index=True)
    ended_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    message_count = Column(Integer, default=0, nullable=False)

    # Raw container as received, kept for debugging
    chat_data = Column(JSON, nullable=True)

    status = Column(String(20), default="active", nullable=False, index=True)  # active, archived

    # Owned by the analysis pipeline; sync never resets it
    analyzed = Column(Boolean, default=False, nullable=False, index=True)

    synced_at = Column(DateTime, nullable=False)
    first_response_time = Column(Integer, nullable=True)  # seconds

    rating_score = Column(Float, nullable=True)
    rating_status = Column(String(50), nullable=True)
    rating_comment = Column(Text, nullable=True)
    has_rating_comment = Column(Boolean, default=False, nullable=False)
    complaint_flag = Column(Boolean, default=False, nullable=False)
