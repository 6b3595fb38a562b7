"""
Applications Service Layer

Admission control for student applications and the professor-side
operations on them.

Submission flow (in order, first failure wins):
1. Project must exist                          -> ProjectNotFoundError
2. Project must be PUBLISHED                   -> InvalidStateError
3. Deadline, when set, must not be before now  -> DeadlinePassedError
4. No existing application for the student     -> DuplicateApplicationError
5. Upload the resume                           -> DependencyFailureError
6. Persist the application as PENDING; on failure the uploaded resume
   is deleted best-effort before the error is raised
7. Queue the confirmation and professor alert

The duplicate check in 4 and the insert in 6 are not atomic. The unique
constraint on (project_id, student_key) catches the concurrent case and
is reported as DuplicateApplicationError after the same resume cleanup.

Professor-side operations resolve the application through
modules.ownership, so other professors' applications read as not found.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from research_engine.core.context import ServiceContext
from research_engine.core.errors import (
    ApplicationNotFoundError,
    DeadlinePassedError,
    DependencyFailureError,
    DuplicateApplicationError,
    InvalidStateError,
    ProjectNotFoundError,
    ResumeNotFoundError,
)
from research_engine.core.storage import (
    StorageError,
    build_resume_key,
    key_file_name,
    mime_type_for,
    resume_prefix,
)
from research_engine.modules.applications import repository
from research_engine.modules.applications.models import (
    VALID_STATUS_TRANSITIONS,
    Application,
    ApplicationStatus,
    normalize_student_key,
)
from research_engine.modules.applications.schemas import ApplicationCreate, ResumeUpload
from research_engine.modules.notifications.events import (
    ApplicationStatusChanged,
    ApplicationSubmitted,
)
from research_engine.modules.ownership import require_owned_application, require_owned_project
from research_engine.modules.projects import repository as project_repository
from research_engine.modules.projects.models import ProjectStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResumeLink:
    url: str
    file_name: str
    mime_type: str


class InvalidApplicationTransitionError(InvalidStateError):
    def __init__(self, current_status: ApplicationStatus, new_status: ApplicationStatus):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Invalid application status transition: {current_status.value} -> {new_status.value}."
        )


async def _discard_resume(ctx: ServiceContext, key: str) -> None:
    try:
        await ctx.storage.delete(key)
    except StorageError as e:
        logger.warning(f"Could not clean up resume {key}: {e}")


async def _signed_url_or_none(ctx: ServiceContext, key: str) -> str | None:
    try:
        return await ctx.storage.signed_url(key, ctx.settings.resume_url_ttl_seconds)
    except StorageError as e:
        logger.warning(f"Could not sign resume URL for {key}: {e}")
        return None


async def submit_application(
    db: AsyncSession,
    ctx: ServiceContext,
    project_id: UUID,
    data: ApplicationCreate,
    resume: ResumeUpload,
) -> Application:
    """
    Admit a student's application to a published project.

    Args:
        db: Database session
        ctx: Service context (clock, storage, notifier, settings)
        project_id: Target project
        data: Validated form payload
        resume: Resume file, already checked for size and type

    Returns:
        The persisted PENDING application

    Raises:
        ProjectNotFoundError: If the project does not exist
        InvalidStateError: If the project is not PUBLISHED
        DeadlinePassedError: If the application deadline has passed
        DuplicateApplicationError: If the student already applied
        DependencyFailureError: If the resume could not be stored
    """
    project = await project_repository.get_by_id(db, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)

    if project.status != ProjectStatus.PUBLISHED:
        raise InvalidStateError(
            "This project is not accepting applications.", expected_state="PUBLISHED"
        )

    now = ctx.clock.now()
    if project.deadline_passed(now):
        raise DeadlinePassedError()

    student_key = normalize_student_key(str(data.student_info.email))
    if await repository.exists_for_student(db, project_id, student_key):
        logger.warning(f"Duplicate application attempt for project {project_id}")
        raise DuplicateApplicationError()

    key = build_resume_key(project_id, resume.file_name, now)
    try:
        await ctx.storage.upload(
            key, resume.content, resume.content_type or mime_type_for(resume.file_name)
        )
    except StorageError as e:
        logger.error(f"Resume upload failed for project {project_id}: {e}")
        raise DependencyFailureError("Failed to store the resume. Please try again.") from e

    try:
        application = await repository.create(db, project_id, student_key, data, key)
    except IntegrityError as e:
        await db.rollback()
        await _discard_resume(ctx, key)
        logger.warning(f"Concurrent duplicate application for project {project_id}")
        raise DuplicateApplicationError() from e
    except Exception:
        await db.rollback()
        await _discard_resume(ctx, key)
        raise

    logger.info(f"Application {application.id} submitted for project {project_id}")

    resume_url = await _signed_url_or_none(ctx, key)
    ctx.notifier.enqueue(
        ApplicationSubmitted(
            application_id=application.id,
            project_title=project.title,
            student_email=application.student_email,
            student_name=application.student_name,
            professor_email=project.professor.email,
            student_info=application.student_info,
            availability=application.availability,
            additional_info=application.additional_info,
            resume_url=resume_url,
        )
    )

    return application


async def list_project_applications(
    db: AsyncSession,
    professor_id: UUID,
    project_id: UUID,
    status: ApplicationStatus | None = None,
) -> list[Application]:
    """
    List the applications of an owned project, newest first.

    Raises:
        ProjectNotFoundError: If the project is absent or not owned by the caller
    """
    await require_owned_project(db, professor_id, project_id)
    return await repository.find_by_project(db, project_id, status)


async def update_application_status(
    db: AsyncSession,
    ctx: ServiceContext,
    professor_id: UUID,
    application_id: UUID,
    new_status: ApplicationStatus,
) -> Application:
    """
    Change an application's status and notify the student.

    Re-writing the current status is allowed.

    Raises:
        ApplicationNotFoundError: If absent or not owned by the caller
        InvalidApplicationTransitionError: If the transition is not allowed
    """
    application = await require_owned_application(db, professor_id, application_id)

    current = application.status
    if new_status != current and new_status not in VALID_STATUS_TRANSITIONS.get(current, set()):
        raise InvalidApplicationTransitionError(current, new_status)

    updated = await repository.update_status(db, application_id, new_status)
    if updated is None:
        raise ApplicationNotFoundError(application_id)

    logger.info(
        f"Application {application_id} status {current.value} -> {new_status.value} "
        f"by professor {professor_id}"
    )

    ctx.notifier.enqueue(
        ApplicationStatusChanged(
            application_id=updated.id,
            project_title=updated.project.title,
            student_email=updated.student_email,
            status=new_status,
        )
    )
    return updated


async def delete_application(
    db: AsyncSession,
    ctx: ServiceContext,
    professor_id: UUID,
    application_id: UUID,
) -> None:
    """
    Delete an owned application and, best-effort, its resume.

    Raises:
        ApplicationNotFoundError: If absent or not owned by the caller
    """
    application = await require_owned_application(db, professor_id, application_id)
    resume_path = application.resume_path

    if not await repository.delete_application(db, application_id):
        raise ApplicationNotFoundError(application_id)

    logger.info(f"Application {application_id} deleted by professor {professor_id}")

    if resume_path:
        await _discard_resume(ctx, resume_path)


async def get_resume(
    db: AsyncSession,
    ctx: ServiceContext,
    professor_id: UUID,
    application_id: UUID,
) -> ResumeLink:
    """
    Issue a time-limited download link for an application's resume.

    Uses the stored key. Records without one fall back to the most recent
    object under the project's resume prefix, which is not guaranteed to
    be this applicant's upload.

    Raises:
        ApplicationNotFoundError: If absent or not owned by the caller
        ResumeNotFoundError: If no resume can be located
        DependencyFailureError: If the blob store fails
    """
    application = await require_owned_application(db, professor_id, application_id)

    key = application.resume_path
    if not key:
        try:
            key = await ctx.storage.latest_key(resume_prefix(application.project_id))
        except StorageError as e:
            raise DependencyFailureError("Failed to look up the resume.") from e
        if not key:
            raise ResumeNotFoundError(application_id)
        logger.warning(
            f"Application {application_id} has no stored resume key; signing the newest "
            f"project resume {key}, which may belong to another applicant"
        )

    try:
        url = await ctx.storage.signed_url(key, ctx.settings.resume_url_ttl_seconds)
    except StorageError as e:
        raise DependencyFailureError("Failed to generate the resume download link.") from e

    return ResumeLink(url=url, file_name=key_file_name(key), mime_type=mime_type_for(key))
