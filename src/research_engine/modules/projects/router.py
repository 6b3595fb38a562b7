"""
Projects Router

Public listing/detail endpoints and professor-authenticated management.

Endpoints:
- GET    /projects                  - Public listing of published projects
- GET    /projects/mine             - Caller's projects (optional status filter)
- GET    /projects/{id}             - Project detail
- POST   /projects                  - Create (DRAFT or PUBLISHED)
- PATCH  /projects/{id}             - Update plain fields
- POST   /projects/{id}/publish     - DRAFT -> PUBLISHED
- PATCH  /projects/{id}/visibility  - Hide / show
- POST   /projects/{id}/close       - Close and cascade to pending applications
- DELETE /projects/{id}             - Delete a DRAFT or CLOSED project

Projects owned by another professor answer 404, like missing ones.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from research_engine.core.auth import CurrentProfessor, get_current_professor
from research_engine.core.context import ServiceContext, get_context
from research_engine.core.database import get_db
from research_engine.core.errors import ServiceError, to_http_exception
from research_engine.modules.projects import service
from research_engine.modules.projects.models import Campus, ProjectStatus
from research_engine.modules.projects.schemas import (
    CloseProjectResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectQuery,
    ProjectResponse,
    ProjectUpdate,
    SortField,
    SortOrder,
    VisibilityUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _project_query(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    departments: str | None = Query(None, description="Comma-separated department names"),
    campus: Campus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    research_categories: list[str] | None = Query(None),
    sort_by: SortField = Query(SortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
) -> ProjectQuery:
    return ProjectQuery(
        page=page,
        limit=limit,
        departments=departments,
        campus=campus,
        search=search,
        research_categories=research_categories,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List Published Projects",
)
async def list_projects(
    query: ProjectQuery = Depends(_project_query),
    db: AsyncSession = Depends(get_db),
) -> ProjectListResponse:
    projects, total = await service.list_published_projects(db, query)
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        page=query.page,
        limit=query.limit,
    )


@router.get(
    "/mine",
    response_model=list[ProjectResponse],
    summary="List My Projects",
)
async def list_my_projects(
    status_filter: ProjectStatus | None = Query(None, alias="status"),
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
) -> list[ProjectResponse]:
    projects = await service.list_professor_projects(db, professor.id, status_filter)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get Project",
)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    try:
        project = await service.get_project(db, project_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return ProjectResponse.model_validate(project)


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Project",
)
async def create_project(
    data: ProjectCreate,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await service.create_project(db, professor.id, data)
    return ProjectResponse.model_validate(project)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update Project",
)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    try:
        project = await service.update_project(db, professor.id, project_id, data)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return ProjectResponse.model_validate(project)


@router.post(
    "/{project_id}/publish",
    response_model=ProjectResponse,
    summary="Publish Project",
)
async def publish_project(
    project_id: UUID,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    try:
        project = await service.publish_project(db, professor.id, project_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return ProjectResponse.model_validate(project)


@router.patch(
    "/{project_id}/visibility",
    response_model=ProjectResponse,
    summary="Set Project Visibility",
)
async def set_visibility(
    project_id: UUID,
    data: VisibilityUpdate,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    try:
        project = await service.set_project_visibility(
            db, professor.id, project_id, data.is_visible
        )
    except ServiceError as e:
        raise to_http_exception(e) from e
    return ProjectResponse.model_validate(project)


@router.post(
    "/{project_id}/close",
    response_model=CloseProjectResponse,
    summary="Close Project",
    description="""
Close a project and every application still pending on it.

Each pending applicant is notified by email in the background; mail
failures do not affect the result. Closing an already closed project
repeats the cascade and normally changes nothing.
""",
)
async def close_project(
    project_id: UUID,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> CloseProjectResponse:
    try:
        result = await service.close_project(db, ctx, professor.id, project_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return CloseProjectResponse(
        project=ProjectResponse.model_validate(result.project),
        applications_matched=result.matched,
        applications_closed=result.modified,
        notifications_enqueued=result.notified,
    )


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Project",
)
async def delete_project(
    project_id: UUID,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> Response:
    try:
        await service.delete_project(db, ctx, professor.id, project_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
