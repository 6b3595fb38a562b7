"""
Projects Service Layer

Owns the project state machine and the close cascade.

State machine:
    DRAFT -> PUBLISHED        publish_project (no side effects)
    PUBLISHED -> CLOSED       close_project (owner) or close_expired_projects (sweep)
    CLOSED -> CLOSED          close_project again re-runs the cascade as a repair
    ARCHIVED                  declared, never reached

Close cascade (shared by the manual and the automatic path):
    1. Conditional write: status=CLOSED, is_visible=False
    2. Fetch the project's PENDING applications
    3. Bulk-transition them to CLOSED
    4. Enqueue one ProjectClosed notification per application fetched in 2

The steps are not wrapped in one transaction. If step 3 fails the project
stays CLOSED with PENDING applications, and closing it again repairs it.
Notifications are queued, so mail problems never reach the caller.

Ownership:
    Every professor-scoped operation goes through modules.ownership, so a
    project owned by someone else is indistinguishable from a missing one.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from research_engine.core.context import ServiceContext
from research_engine.core.errors import InvalidStateError, ProjectNotFoundError
from research_engine.core.storage import StorageError
from research_engine.modules.applications import repository as application_repository
from research_engine.modules.applications.models import ApplicationStatus
from research_engine.modules.notifications.events import ProjectClosed
from research_engine.modules.ownership import require_owned_project
from research_engine.modules.projects import repository
from research_engine.modules.projects.models import (
    VALID_STATUS_TRANSITIONS,
    Project,
    ProjectStatus,
)
from research_engine.modules.projects.schemas import ProjectCreate, ProjectQuery, ProjectUpdate

logger = logging.getLogger(__name__)

# Statuses a manual close may start from
CLOSABLE_STATUSES = frozenset({ProjectStatus.PUBLISHED, ProjectStatus.CLOSED})

# Statuses in which an owner may delete a project
DELETABLE_STATUSES = frozenset({ProjectStatus.DRAFT, ProjectStatus.CLOSED})


@dataclass(frozen=True)
class CloseResult:
    """Outcome of one close cascade."""

    project: Project
    matched: int
    modified: int
    notified: int


class InvalidProjectTransitionError(InvalidStateError):
    def __init__(self, current_status: ProjectStatus, new_status: ProjectStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid project status transition: {current_status.value} -> {new_status.value}.",
            expected_state=", ".join(sorted(s.value for s in valid)) or None,
        )


def _ensure_transition(current: ProjectStatus, new: ProjectStatus) -> None:
    if new not in VALID_STATUS_TRANSITIONS.get(current, set()):
        raise InvalidProjectTransitionError(current, new)


# ============================================
# Queries
# ============================================


async def create_project(db: AsyncSession, professor_id: UUID, data: ProjectCreate) -> Project:
    """
    Create a project owned by the caller, as DRAFT or PUBLISHED.

    Args:
        db: Database session
        professor_id: Owner
        data: Validated project fields

    Returns:
        The created project with its professor loaded
    """
    project = await repository.create(db, professor_id, data)
    logger.info(f"Project {project.id} created by professor {professor_id} as {project.status.value}")
    return project


async def get_project(db: AsyncSession, project_id: UUID) -> Project:
    """
    Get a project by ID.

    Raises:
        ProjectNotFoundError: If no project has this ID
    """
    project = await repository.get_by_id(db, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


async def list_published_projects(
    db: AsyncSession, query: ProjectQuery
) -> tuple[list[Project], int]:
    return await repository.find_published(db, query)


async def list_professor_projects(
    db: AsyncSession,
    professor_id: UUID,
    status: ProjectStatus | None = None,
) -> list[Project]:
    return await repository.find_by_professor(db, professor_id, status)


# ============================================
# Owner mutations
# ============================================


async def update_project(
    db: AsyncSession,
    professor_id: UUID,
    project_id: UUID,
    data: ProjectUpdate,
) -> Project:
    """
    Patch an owned project's plain fields.

    Status and visibility cannot be set here; ProjectUpdate does not carry them.

    Raises:
        ProjectNotFoundError: If the project is absent or not owned by the caller
    """
    await require_owned_project(db, professor_id, project_id)

    fields = data.model_dump(exclude_unset=True)
    project = await repository.update_fields(db, project_id, professor_id, fields)
    if project is None:
        raise ProjectNotFoundError(project_id)

    logger.info(
        f"Project {project_id} updated by professor {professor_id}: {sorted(fields.keys())}"
    )
    return project


async def publish_project(db: AsyncSession, professor_id: UUID, project_id: UUID) -> Project:
    """
    Move an owned DRAFT project to PUBLISHED.

    Raises:
        ProjectNotFoundError: If the project is absent or not owned by the caller
        InvalidProjectTransitionError: If the project is not a DRAFT
    """
    project = await require_owned_project(db, professor_id, project_id)
    _ensure_transition(project.status, ProjectStatus.PUBLISHED)

    updated = await repository.set_lifecycle_state(
        db,
        project_id,
        status=ProjectStatus.PUBLISHED,
        professor_id=professor_id,
        allowed_statuses={ProjectStatus.DRAFT},
    )
    if updated is None:
        # Status changed between the read and the conditional write
        raise InvalidStateError("Project is no longer a draft.", expected_state="DRAFT")

    logger.info(f"Project {project_id} published by professor {professor_id}")
    return updated


async def set_project_visibility(
    db: AsyncSession,
    professor_id: UUID,
    project_id: UUID,
    visible: bool,
) -> Project:
    """
    Hide or show an owned project.

    Raises:
        ProjectNotFoundError: If the project is absent or not owned by the caller
        InvalidStateError: If the project is CLOSED (closed projects stay hidden)
    """
    project = await require_owned_project(db, professor_id, project_id)
    if project.status in (ProjectStatus.CLOSED, ProjectStatus.ARCHIVED):
        raise InvalidStateError("Visibility of a closed project cannot be changed.")

    updated = await repository.set_lifecycle_state(
        db,
        project_id,
        is_visible=visible,
        professor_id=professor_id,
        allowed_statuses={ProjectStatus.DRAFT, ProjectStatus.PUBLISHED},
    )
    if updated is None:
        raise InvalidStateError("Visibility of a closed project cannot be changed.")

    logger.info(f"Project {project_id} visibility set to {visible} by professor {professor_id}")
    return updated


async def delete_project(
    db: AsyncSession,
    ctx: ServiceContext,
    professor_id: UUID,
    project_id: UUID,
) -> None:
    """
    Delete an owned DRAFT or CLOSED project with its applications.

    Resume blobs are removed best-effort after the records are gone.

    Raises:
        ProjectNotFoundError: If the project is absent or not owned by the caller
        InvalidStateError: If the project is PUBLISHED
    """
    project = await require_owned_project(db, professor_id, project_id)
    if project.status not in DELETABLE_STATUSES:
        raise InvalidStateError(
            "Only draft or closed projects can be deleted.", expected_state="DRAFT or CLOSED"
        )

    resume_paths = await application_repository.delete_for_project(db, project_id)
    if not await repository.delete_project(db, project_id, professor_id):
        raise ProjectNotFoundError(project_id)

    logger.info(
        f"Project {project_id} deleted by professor {professor_id} "
        f"with {len(resume_paths)} resume(s)"
    )

    for key in resume_paths:
        try:
            await ctx.storage.delete(key)
        except StorageError as e:
            logger.warning(f"Could not delete resume {key} of deleted project {project_id}: {e}")


# ============================================
# Close
# ============================================


async def _run_close_cascade(
    db: AsyncSession,
    ctx: ServiceContext,
    project: Project,
) -> CloseResult:
    pending = await application_repository.find_by_project(
        db, project.id, ApplicationStatus.PENDING
    )

    bulk = await application_repository.close_pending_for_project(db, project.id)
    logger.info(
        f"Project {project.id}: closed applications "
        f"(matched={bulk.matched}, modified={bulk.modified})"
    )

    notified = 0
    for application in pending:
        ctx.notifier.enqueue(
            ProjectClosed(
                project_id=project.id,
                application_id=application.id,
                project_title=project.title,
                student_email=application.student_email,
            )
        )
        notified += 1

    return CloseResult(
        project=project,
        matched=bulk.matched,
        modified=bulk.modified,
        notified=notified,
    )


async def close_project(
    db: AsyncSession,
    ctx: ServiceContext,
    professor_id: UUID,
    project_id: UUID,
) -> CloseResult:
    """
    Close an owned project and cascade to its pending applications.

    Closing an already CLOSED project re-runs the cascade, which finds no
    PENDING applications unless an earlier close failed midway.

    Raises:
        ProjectNotFoundError: If the project is absent, not owned by the
            caller, or not in a closable status (DRAFT)
    """
    project = await require_owned_project(db, professor_id, project_id)
    if project.status not in CLOSABLE_STATUSES:
        raise ProjectNotFoundError(project_id)

    updated = await repository.set_lifecycle_state(
        db,
        project_id,
        status=ProjectStatus.CLOSED,
        is_visible=False,
        professor_id=professor_id,
        allowed_statuses=CLOSABLE_STATUSES,
    )
    if updated is None:
        raise ProjectNotFoundError(project_id)

    logger.info(f"Project {project_id} closed by professor {professor_id}")
    return await _run_close_cascade(db, ctx, updated)


async def close_expired_project(ctx: ServiceContext, project_id: UUID) -> CloseResult | None:
    """
    Close one expired project in its own session.

    Returns:
        The close result, or None if the project was no longer PUBLISHED
        (for example closed manually since the sweep listed it)
    """
    async with ctx.session_factory() as db:
        updated = await repository.set_lifecycle_state(
            db,
            project_id,
            status=ProjectStatus.CLOSED,
            is_visible=False,
            allowed_statuses={ProjectStatus.PUBLISHED},
        )
        if updated is None:
            logger.info(f"Project {project_id} no longer published, skipping")
            return None

        logger.info(f"Automatically closed expired project {project_id}")
        return await _run_close_cascade(db, ctx, updated)


async def close_expired_projects(ctx: ServiceContext) -> dict[str, Any]:
    """
    Close every PUBLISHED project whose deadline is strictly before now.

    Expired projects are read in keyset-paged batches. Within a batch the
    projects close concurrently, bounded by sweep_concurrency, and each one
    runs in its own session and error boundary: a failure is logged and
    recorded, and the sweep carries on.

    Returns:
        Summary dict with per-project results and totals
    """
    now: datetime = ctx.clock.now()
    batch_size = ctx.settings.sweep_batch_size
    semaphore = asyncio.Semaphore(ctx.settings.sweep_concurrency)

    results: dict[str, Any] = {
        "executed_at": now.isoformat(),
        "projects": [],
        "total_processed": 0,
        "total_closed": 0,
        "total_skipped": 0,
        "total_errors": 0,
        "total_applications_closed": 0,
    }

    async def _process(project_id: UUID) -> dict[str, Any]:
        async with semaphore:
            try:
                outcome = await close_expired_project(ctx, project_id)
            except Exception as e:
                logger.error(f"Error closing expired project {project_id}: {e}", exc_info=True)
                return {"project_id": str(project_id), "status": "error", "error": str(e)}

        if outcome is None:
            return {"project_id": str(project_id), "status": "skipped"}
        return {
            "project_id": str(project_id),
            "status": "closed",
            "applications_closed": outcome.modified,
            "notifications_enqueued": outcome.notified,
        }

    logger.info(f"Deadline sweep started for deadlines before {now.isoformat()}")

    after_id: UUID | None = None
    while True:
        async with ctx.session_factory() as db:
            batch = await repository.find_expired_published(db, now, after_id, batch_size)
        if not batch:
            break

        after_id = batch[-1].id
        outcomes = await asyncio.gather(*(_process(project.id) for project in batch))

        for outcome in outcomes:
            results["projects"].append(outcome)
            results["total_processed"] += 1
            if outcome["status"] == "closed":
                results["total_closed"] += 1
                results["total_applications_closed"] += outcome["applications_closed"]
            elif outcome["status"] == "skipped":
                results["total_skipped"] += 1
            else:
                results["total_errors"] += 1

        if len(batch) < batch_size:
            break

    logger.info(
        f"Deadline sweep completed. Closed: {results['total_closed']}, "
        f"Skipped: {results['total_skipped']}, Errors: {results['total_errors']}"
    )
    return results
