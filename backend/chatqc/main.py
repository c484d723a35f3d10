import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatqc.core.config import settings
from chatqc.core.db import dispose_engine, init_models
from chatqc.services.sync_jobs import get_sync_job_manager, shutdown_sync_job_manager
from chatqc.tasks.scheduler import scheduler
from .routers import sync

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Chat QC Sync API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sync.router, prefix="/api")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "scheduler_running": scheduler.running}

    @app.on_event("startup")
    async def startup_event() -> None:
        try:
            logger.info("Initializing database...")
            await init_models()
            await get_sync_job_manager().recover_interrupted()

            if settings.sync_scheduler_enabled:
                logger.info("Starting sync scheduler...")
                await scheduler.start()

            logger.info("Application started")
        except Exception as e:
            logger.error(f"Application startup failed: {e}", exc_info=True)
            raise

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        try:
            await scheduler.stop()
            await shutdown_sync_job_manager()
            await dispose_engine()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)

    return app


app = create_app()
