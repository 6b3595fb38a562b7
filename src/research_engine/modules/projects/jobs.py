"""
Projects Background Jobs

Deadline sweep: once a day, close every published project whose
application deadline has passed, cascading to its pending applications.

Design Principles:
- The job is idempotent; re-running it closes nothing new
- Each project is closed in its own session and error boundary
- A missed run is not caught up; the next run picks up everything expired

Schedule:
- Daily at deadline_sweep_hour:deadline_sweep_minute UTC (01:00 by default)
- Can be triggered manually via the debug job endpoints
"""

import logging
from typing import Any

from apscheduler.triggers.cron import CronTrigger

from research_engine.core.context import ServiceContext
from research_engine.core.scheduler import register_job
from research_engine.modules.projects.service import close_expired_projects

logger = logging.getLogger(__name__)

JOB_ID_CLOSE_EXPIRED_PROJECTS = "projects_close_expired"


def register_project_jobs(ctx: ServiceContext) -> None:
    """
    Register the project background jobs with the scheduler.

    Call during application startup, before the scheduler is started.
    """
    hour = ctx.settings.deadline_sweep_hour
    minute = ctx.settings.deadline_sweep_minute

    async def sweep_expired_projects() -> dict[str, Any]:
        return await close_expired_projects(ctx)

    register_job(
        job_id=JOB_ID_CLOSE_EXPIRED_PROJECTS,
        func=sweep_expired_projects,
        trigger=CronTrigger(hour=hour, minute=minute, timezone="UTC"),
    )
    logger.info(f"Registered job: {JOB_ID_CLOSE_EXPIRED_PROJECTS} (daily at {hour:02d}:{minute:02d} UTC)")
