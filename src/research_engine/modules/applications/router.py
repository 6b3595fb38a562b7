"""
Applications Router

Endpoints:
- POST   /projects/{project_id}/applications  - Public submission (multipart), rate-limited
- GET    /projects/{project_id}/applications  - Owner: list applications
- PATCH  /applications/{id}/status            - Owner: change status
- DELETE /applications/{id}                   - Owner: delete application and resume
- GET    /applications/{id}/resume            - Owner: signed resume download link

The submission takes two multipart fields: `application` (the JSON form
payload) and `resume` (pdf, doc or docx, at most resume_max_bytes).
"""

import logging
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from research_engine.core.auth import CurrentProfessor, get_current_professor
from research_engine.core.config import settings
from research_engine.core.context import ServiceContext, get_context
from research_engine.core.database import get_db
from research_engine.core.errors import ServiceError, to_http_exception
from research_engine.core.rate_limit import rate_limiter
from research_engine.core.storage import file_extension
from research_engine.modules.applications import service
from research_engine.modules.applications.models import ApplicationStatus
from research_engine.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
    ApplicationSubmittedResponse,
    ResumeLinkResponse,
    ResumeUpload,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_resume(resume: UploadFile, ctx: ServiceContext) -> ResumeUpload:
    """Check type and size of the uploaded resume and read it."""
    file_name = resume.filename or ""
    allowed = ctx.settings.resume_allowed_extensions
    if file_extension(file_name) not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "INVALID_FILE_TYPE",
                "message": f"Resume must be one of: {', '.join(allowed)}.",
            },
        )

    max_bytes = ctx.settings.resume_max_bytes
    # One byte past the limit is enough to reject
    content = await resume.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": "FILE_TOO_LARGE",
                "message": f"Resume must be at most {max_bytes // (1024 * 1024)}MB.",
            },
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "EMPTY_FILE", "message": "Resume file is empty."},
        )

    return ResumeUpload(file_name=file_name, content=content, content_type=resume.content_type)


@router.post(
    "/projects/{project_id}/applications",
    response_model=ApplicationSubmittedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to a Project",
    dependencies=[
        Depends(
            rate_limiter(settings.application_rate_limit, settings.application_rate_window_seconds)
        )
    ],
)
async def submit_application(
    project_id: UUID,
    application: str = Form(..., description="Application form as JSON"),
    resume: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> ApplicationSubmittedResponse:
    try:
        data = ApplicationCreate.model_validate_json(application)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    upload = await _read_resume(resume, ctx)

    try:
        created = await service.submit_application(db, ctx, project_id, data, upload)
    except ServiceError as e:
        raise to_http_exception(e) from e

    return ApplicationSubmittedResponse.model_validate(created)


@router.get(
    "/projects/{project_id}/applications",
    response_model=list[ApplicationResponse],
    summary="List Project Applications",
)
async def list_applications(
    project_id: UUID,
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
) -> list[ApplicationResponse]:
    try:
        applications = await service.list_project_applications(
            db, professor.id, project_id, status_filter
        )
    except ServiceError as e:
        raise to_http_exception(e) from e
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.patch(
    "/applications/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Update Application Status",
)
async def update_status(
    application_id: UUID,
    data: ApplicationStatusUpdate,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> ApplicationResponse:
    try:
        application = await service.update_application_status(
            db, ctx, professor.id, application_id, data.status
        )
    except ServiceError as e:
        raise to_http_exception(e) from e
    return ApplicationResponse.model_validate(application)


@router.delete(
    "/applications/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Application",
)
async def delete_application(
    application_id: UUID,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> Response:
    try:
        await service.delete_application(db, ctx, professor.id, application_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/applications/{application_id}/resume",
    response_model=ResumeLinkResponse,
    summary="Get Resume Download Link",
)
async def get_resume(
    application_id: UUID,
    professor: CurrentProfessor = Depends(get_current_professor),
    db: AsyncSession = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> ResumeLinkResponse:
    try:
        link = await service.get_resume(db, ctx, professor.id, application_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
    return ResumeLinkResponse(
        url=link.url,
        file_name=link.file_name,
        mime_type=link.mime_type,
        expires_in_seconds=ctx.settings.resume_url_ttl_seconds,
    )
