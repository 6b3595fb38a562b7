"""
Projects Repository

Database operations for projects. Only data access lives here: ownership
decisions, state machine checks and side effects belong to the service.

Design Principles:
- All queries are parameterized
- Conditional writes report "no match" as None rather than raising
- Timezone-aware datetime handling (UTC)
"""

from collections.abc import Collection
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import String, and_, cast, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from research_engine.modules.professors.models import Professor

from .models import Project, ProjectStatus
from .schemas import ProjectCreate, ProjectQuery, SortField, SortOrder


async def create(db: AsyncSession, professor_id: UUID, data: ProjectCreate) -> Project:
    """Create a new project owned by professor_id."""
    project = Project(
        professor_id=professor_id,
        title=data.title,
        description=data.description,
        campus=data.campus,
        research_categories=list(data.research_categories),
        requirements=list(data.requirements),
        positions=data.positions,
        application_deadline=data.application_deadline,
        status=data.status,
        is_visible=data.is_visible,
    )

    db.add(project)
    await db.commit()

    return await get_by_id(db, project.id)


async def get_by_id(db: AsyncSession, id: UUID) -> Project | None:
    """Get a project by ID with its professor loaded."""
    result = await db.execute(
        select(Project).where(Project.id == id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _published_filters(query: ProjectQuery) -> list[Any]:
    filters: list[Any] = [Project.status == ProjectStatus.PUBLISHED]

    if query.campus:
        filters.append(Project.campus == query.campus)

    if query.departments:
        filters.append(
            Project.professor_id.in_(
                select(Professor.id).where(Professor.department.in_(query.departments))
            )
        )

    if query.research_categories:
        # Membership in the JSON list, matched on the serialized element
        categories_text = cast(Project.research_categories, String)
        filters.append(
            or_(
                *[
                    categories_text.contains(f'"{category}"', autoescape=True)
                    for category in query.research_categories
                ]
            )
        )

    if query.search and query.search.strip():
        search = query.search.strip()

        terms = search.split()[:2]
        name_matches = [
            or_(
                Professor.first_name.icontains(term, autoescape=True),
                Professor.last_name.icontains(term, autoescape=True),
            )
            for term in terms
        ]
        professor_ids = select(Professor.id).where(and_(*name_matches))

        filters.append(
            or_(
                Project.title.icontains(search, autoescape=True),
                Project.description.icontains(search, autoescape=True),
                cast(Project.requirements, String).icontains(search, autoescape=True),
                Project.professor_id.in_(professor_ids),
            )
        )

    return filters


async def find_published(db: AsyncSession, query: ProjectQuery) -> tuple[list[Project], int]:
    """
    Page through published projects.

    Args:
        db: Database session
        query: Filters, sort and pagination

    Returns:
        (projects on the requested page, total matching count)
    """
    filters = _published_filters(query)

    sort_column = (
        Project.application_deadline
        if query.sort_by == SortField.APPLICATION_DEADLINE
        else Project.created_at
    )
    order = sort_column.asc() if query.sort_order == SortOrder.ASC else sort_column.desc()

    total = await db.scalar(select(func.count()).select_from(Project).where(*filters))

    result = await db.execute(
        select(Project)
        .where(*filters)
        .order_by(order, Project.id)
        .offset(query.offset)
        .limit(query.limit)
    )
    return list(result.scalars().all()), total or 0


async def find_by_professor(
    db: AsyncSession,
    professor_id: UUID,
    status: ProjectStatus | None = None,
) -> list[Project]:
    """Get a professor's projects, newest first."""
    stmt = select(Project).where(Project.professor_id == professor_id)
    if status:
        stmt = stmt.where(Project.status == status)

    result = await db.execute(stmt.order_by(Project.created_at.desc(), Project.id))
    return list(result.scalars().all())


async def find_expired_published(
    db: AsyncSession,
    before: datetime,
    after_id: UUID | None = None,
    limit: int = 100,
) -> list[Project]:
    """
    Get published projects whose deadline is strictly before the given time.

    Keyset-paged on id: pass the last id of the previous page as after_id.
    A deadline equal to `before` is not expired.

    Args:
        db: Database session
        before: Sweep instant
        after_id: Last id seen on the previous page
        limit: Page size

    Returns:
        Up to `limit` expired projects ordered by id
    """
    stmt = select(Project).where(
        Project.status == ProjectStatus.PUBLISHED,
        Project.application_deadline.is_not(None),
        Project.application_deadline < before,
    )
    if after_id is not None:
        stmt = stmt.where(Project.id > after_id)

    result = await db.execute(stmt.order_by(Project.id).limit(limit))
    return list(result.scalars().all())


async def update_fields(
    db: AsyncSession,
    id: UUID,
    professor_id: UUID,
    fields: dict[str, Any],
) -> Project | None:
    """
    Patch plain fields of a project scoped by id and owner.

    Returns:
        The updated project, or None if no owned project matched
    """
    if fields:
        result = await db.execute(
            update(Project)
            .where(Project.id == id, Project.professor_id == professor_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if result.rowcount == 0:
            return None

    project = await get_by_id(db, id)
    if project is None or project.professor_id != professor_id:
        return None
    return project


async def set_lifecycle_state(
    db: AsyncSession,
    id: UUID,
    *,
    status: ProjectStatus | None = None,
    is_visible: bool | None = None,
    professor_id: UUID | None = None,
    allowed_statuses: Collection[ProjectStatus] | None = None,
) -> Project | None:
    """
    Conditionally write status and/or visibility.

    The write matches on id, and additionally on owner and current status
    when given, in a single UPDATE statement.

    Returns:
        The updated project, or None if nothing matched
    """
    values: dict[str, Any] = {}
    if status is not None:
        values["status"] = status
    if is_visible is not None:
        values["is_visible"] = is_visible

    stmt = update(Project).where(Project.id == id)
    if professor_id is not None:
        stmt = stmt.where(Project.professor_id == professor_id)
    if allowed_statuses is not None:
        stmt = stmt.where(Project.status.in_(list(allowed_statuses)))

    result = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    await db.commit()

    if result.rowcount == 0:
        return None

    return await get_by_id(db, id)


async def delete_project(db: AsyncSession, id: UUID, professor_id: UUID) -> bool:
    """
    Delete an owned project.

    Returns:
        True if a row was deleted
    """
    result = await db.execute(
        delete(Project)
        .where(Project.id == id, Project.professor_id == professor_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0
