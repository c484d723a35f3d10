"""Sync API routes"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatqc.core.config import Settings, get_settings
from chatqc.core.db import get_sessionmaker
from chatqc.core.exceptions import InvalidJobTransition
from chatqc.schemas.sync import (
    AlertDeliveryResult,
    SyncErrorResponse,
    SyncJobCreated,
    SyncJobResponse,
    SyncResult,
)
from chatqc.services.alert_delivery import deliver_pending_alerts
from chatqc.services.chat_sync import resolve_window
from chatqc.services.sync_jobs import SyncJobManager, get_sync_job_manager
from chatqc.services.telegram_notifier import TelegramNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def _error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=SyncErrorResponse(error=error).model_dump(),
    )


@router.get(
    "",
    response_model=SyncResult | SyncJobCreated,
    responses={
        400: {"model": SyncErrorResponse},
        404: {"model": SyncErrorResponse},
        409: {"model": SyncErrorResponse},
        500: {"model": SyncErrorResponse},
    },
)
async def sync_chats(
    background: bool = Query(False, description="Create a job and return immediately"),
    job_id: int | None = Query(None, description="Run this pending job"),
    days: int | None = Query(None, description="Sync the last N days"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    settings: Settings = Depends(get_settings),
    manager: SyncJobManager = Depends(get_sync_job_manager),
):
    """
    Sync LiveChat chats.

    - ``job_id``: run that pending job now and return its result
    - ``background=true``: create a job, return its id right away
    - otherwise: run inline and return the result
    """
    if job_id is not None:
        job = await manager.get_job(job_id)
        if job is None:
            return _error_response(404, f"Sync job {job_id} not found")
        try:
            return await manager.execute(job_id)
        except InvalidJobTransition as e:
            return _error_response(409, str(e))
        except Exception as e:
            logger.error(f"Sync job {job_id} failed: {e}", exc_info=True)
            return _error_response(500, str(e))

    try:
        window = resolve_window(
            start_date=start_date,
            end_date=end_date,
            days=days,
            default_minutes=settings.sync_default_window_minutes,
            max_days=settings.sync_max_days,
        )
    except ValueError as e:
        return _error_response(400, str(e))

    try:
        if background:
            job = await manager.start_background(window)
            return SyncJobCreated(job_id=job.id, status=job.status)

        return await manager.run_inline(window)
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        return _error_response(500, str(e))


@router.get("/jobs/{job_id}", response_model=SyncJobResponse, responses={404: {"model": SyncErrorResponse}})
async def get_sync_job(
    job_id: int,
    manager: SyncJobManager = Depends(get_sync_job_manager),
):
    job = await manager.get_job(job_id)
    if job is None:
        return _error_response(404, f"Sync job {job_id} not found")
    return SyncJobResponse.model_validate(job)


@router.post("/alerts/deliver", response_model=AlertDeliveryResult)
async def deliver_alerts(
    settings: Settings = Depends(get_settings),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker),
):
    """Relay missed chat alerts that are still undelivered."""
    notifier = TelegramNotifier.from_settings(settings)
    if notifier is None:
        return _error_response(400, "Telegram bot token and chat id are not configured")

    try:
        counts = await deliver_pending_alerts(
            session_maker,
            notifier,
            limit=settings.alert_delivery_batch_size,
        )
    except Exception as e:
        logger.error(f"Alert delivery failed: {e}", exc_info=True)
        return _error_response(500, str(e))

    return AlertDeliveryResult(**counts)
