"""Alert model"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from chatqc.core.db import Base

MISSED_CHAT = "missed_chat"


class Alert(Base):
    """Notification record. At most one row per (chat_id, alert_type)."""

    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(255), nullable=False, index=True)  # thread id
    analysis_id = Column(String(255), nullable=True)
    alert_type = Column(String(50), nullable=False, index=True)
    severity = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    sent_to_telegram = Column(Boolean, default=False, nullable=False, index=True)
    telegram_message_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)
