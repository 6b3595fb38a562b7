"""
Ownership checks

Every professor-scoped operation resolves its target through these
helpers. A record that exists but belongs to another professor is
reported exactly like a missing one, so callers cannot probe for ids.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from research_engine.core.errors import ApplicationNotFoundError, ProjectNotFoundError
from research_engine.modules.applications import repository as application_repository
from research_engine.modules.applications.models import Application
from research_engine.modules.projects import repository as project_repository
from research_engine.modules.projects.models import Project

logger = logging.getLogger(__name__)


async def require_owned_project(db: AsyncSession, professor_id: UUID, project_id: UUID) -> Project:
    """
    Load a project the caller owns.

    Raises:
        ProjectNotFoundError: If the project is absent or owned by someone else
    """
    project = await project_repository.get_by_id(db, project_id)
    if project is None or project.professor_id != professor_id:
        if project is not None:
            logger.info(f"Professor {professor_id} denied access to project {project_id}")
        raise ProjectNotFoundError(project_id)
    return project


async def require_owned_application(
    db: AsyncSession, professor_id: UUID, application_id: UUID
) -> Application:
    """
    Load an application whose project the caller owns.

    Raises:
        ApplicationNotFoundError: If the application is absent or not the caller's
    """
    application = await application_repository.get_by_id(db, application_id)
    if application is None or application.project.professor_id != professor_id:
        if application is not None:
            logger.info(f"Professor {professor_id} denied access to application {application_id}")
        raise ApplicationNotFoundError(application_id)
    return application
