"""
Applications Repository

Database operations for student applications.

The unique constraint on (project_id, student_key) is the storage-level
backstop for the service's pre-insert duplicate check; an IntegrityError
from create() is left to the caller to translate.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Application, ApplicationStatus
from .schemas import ApplicationCreate


@dataclass(frozen=True)
class BulkUpdateResult:
    matched: int
    modified: int


async def create(
    db: AsyncSession,
    project_id: UUID,
    student_key: str,
    data: ApplicationCreate,
    resume_path: str | None,
) -> Application:
    """Persist a new PENDING application."""
    application = Application(
        project_id=project_id,
        student_key=student_key,
        student_email=str(data.student_info.email),
        student_info=data.student_info.model_dump(mode="json"),
        availability=data.availability.model_dump(mode="json"),
        additional_info=data.additional_info.model_dump(mode="json"),
        resume_path=resume_path,
        status=ApplicationStatus.PENDING,
    )

    db.add(application)
    await db.commit()

    return await get_by_id(db, application.id)


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    """Get an application with its project (and the project's professor) loaded."""
    result = await db.execute(
        select(Application).where(Application.id == id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def exists_for_student(db: AsyncSession, project_id: UUID, student_key: str) -> bool:
    result = await db.execute(
        select(Application.id)
        .where(Application.project_id == project_id, Application.student_key == student_key)
        .limit(1)
    )
    return result.first() is not None


async def find_by_project(
    db: AsyncSession,
    project_id: UUID,
    status: ApplicationStatus | None = None,
) -> list[Application]:
    """Get a project's applications, newest first."""
    stmt = select(Application).where(Application.project_id == project_id)
    if status:
        stmt = stmt.where(Application.status == status)

    result = await db.execute(
        stmt.order_by(Application.created_at.desc(), Application.id).execution_options(
            populate_existing=True
        )
    )
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession,
    id: UUID,
    status: ApplicationStatus,
) -> Application | None:
    """
    Write a new status.

    Returns:
        The updated application, or None if it no longer exists
    """
    result = await db.execute(
        update(Application)
        .where(Application.id == id)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount == 0:
        return None
    return await get_by_id(db, id)


async def close_pending_for_project(db: AsyncSession, project_id: UUID) -> BulkUpdateResult:
    """
    Move every PENDING application of a project to CLOSED.

    Zero matches is a no-op, not an error.

    Returns:
        Matched and modified counts
    """
    matched = await db.scalar(
        select(func.count())
        .select_from(Application)
        .where(
            Application.project_id == project_id,
            Application.status == ApplicationStatus.PENDING,
        )
    )

    result = await db.execute(
        update(Application)
        .where(
            Application.project_id == project_id,
            Application.status == ApplicationStatus.PENDING,
        )
        .values(status=ApplicationStatus.CLOSED)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    return BulkUpdateResult(matched=matched or 0, modified=result.rowcount)


async def delete_application(db: AsyncSession, id: UUID) -> bool:
    result = await db.execute(
        delete(Application).where(Application.id == id).execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0


async def delete_for_project(db: AsyncSession, project_id: UUID) -> list[str]:
    """
    Delete all applications of a project.

    Returns:
        The resume keys of the deleted applications, for blob cleanup
    """
    result = await db.execute(
        select(Application.resume_path).where(
            Application.project_id == project_id,
            Application.resume_path.is_not(None),
        )
    )
    resume_paths = [row[0] for row in result.all()]

    await db.execute(
        delete(Application)
        .where(Application.project_id == project_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    return resume_paths
