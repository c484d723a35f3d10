from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String

from chatqc.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Personnel(Base):
    """Agents seen during sync. Sync only creates rows; the stats columns belong to analytics."""

    __tablename__ = "personnel"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)

    total_chats = Column(Integer, default=0, nullable=False)
    average_score = Column(Float, default=0, nullable=False)
    warning_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)
