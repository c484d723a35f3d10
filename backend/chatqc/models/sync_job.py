"""Sync job model"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from chatqc.core.db import Base


class SyncJobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncJob(Base):
    """Background sync run. Status only moves forward: pending -> processing -> completed | failed."""

    __tablename__ = "sync_jobs"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(20), default=SyncJobStatus.PENDING.value, nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    days = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    result = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
