"""Sync schemas"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SyncResult(BaseModel):
    """Summary of one sync pass"""

    success: bool = True
    synced: int = Field(0, description="Threads written")
    new_chats: int = Field(0, description="Threads stored for the first time")
    analyzed: int = 0
    alerts_sent: int = Field(0, description="Missed chat alerts relayed to Telegram")
    skipped: int = 0
    total_chats: int = 0
    total_analyzed: int = 0
    timestamp: datetime
    timestamp_istanbul: str


class SyncJobCreated(BaseModel):
    success: bool = True
    job_id: int
    status: str = "pending"


class SyncJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    start_date: datetime
    end_date: datetime
    days: int | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None


class SyncErrorResponse(BaseModel):
    success: bool = False
    error: str


class AlertDeliveryResult(BaseModel):
    success: bool = True
    sent: int
    failed: int
