"""
Research Engine API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Resume storage, mail transport and the notification dispatcher
- Background job scheduler (deadline sweep)
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from research_engine.api import api_router
from research_engine.core.clock import SystemClock
from research_engine.core.config import settings
from research_engine.core.context import ServiceContext
from research_engine.core.database import close_db, init_db
from research_engine.core.email import ResendMailTransport
from research_engine.core.redis import close_redis, get_redis, init_redis
from research_engine.core.scheduler import (
    clear_registry,
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from research_engine.core.storage import ResumeStorage
from research_engine.modules.notifications import NotificationDispatcher
from research_engine.modules.projects.jobs import register_project_jobs

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup builds the service context shared by request handlers and
    background jobs. Shutdown stops the scheduler first so no sweep runs
    against a closed dispatcher, then drains pending notifications.
    """
    logger.info(f"Starting Research Engine API in {settings.python_env} mode...")

    session_factory = await init_db(settings)
    logger.info("Database connected")

    await init_redis(settings)

    notifier = NotificationDispatcher(ResendMailTransport.from_settings(settings), settings)
    ctx = ServiceContext(
        settings=settings,
        clock=SystemClock(),
        storage=ResumeStorage.from_settings(settings),
        notifier=notifier,
        session_factory=session_factory,
    )
    app.state.context = ctx

    await notifier.start()

    try:
        register_project_jobs(ctx)
        await start_scheduler()
        logger.info("Background scheduler started")
    except Exception as e:
        logger.error(f"Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield

    logger.info("Shutting down Research Engine API...")

    await stop_scheduler()
    clear_registry()
    await notifier.stop()
    await close_redis()
    await close_db()
    logger.info("Cleanup complete")


app = FastAPI(
    title="Research Engine API",
    description="Undergraduate research opportunity marketplace",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check(request: Request) -> dict[str, str]:
    """Readiness check: database reachable."""
    ctx: ServiceContext = request.app.state.context
    async with ctx.session_factory() as session:
        await session.execute(text("SELECT 1"))
    return {
        "status": "ready",
        "redis": "connected" if get_redis() is not None else "not initialized",
    }


# ============================================
# Background Job Debug Endpoints
# ============================================
# Manual control of the scheduled jobs. Available jobs:
#   - projects_close_expired


@app.get("/debug/jobs", tags=["Debug"])
async def list_jobs():
    """List all registered background jobs and their status."""
    return {"jobs": list_registered_jobs()}


@app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
async def trigger_job(job_id: str):
    """
    Run a background job immediately, bypassing its schedule.

    Raises:
        HTTPException 400: If job_id is not registered.
    """
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/debug/jobs/{job_id}/pause", tags=["Debug"])
async def pause_job_endpoint(job_id: str):
    """Pause a scheduled background job."""
    return {"job_id": job_id, "paused": pause_job(job_id)}


@app.post("/debug/jobs/{job_id}/resume", tags=["Debug"])
async def resume_job_endpoint(job_id: str):
    """Resume a paused background job."""
    return {"job_id": job_id, "resumed": resume_job(job_id)}
