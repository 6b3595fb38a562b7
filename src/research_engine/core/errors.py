"""
Service Errors

Exception hierarchy shared by the projects and applications services.

Each error carries a machine-readable error_code and the HTTP status the
API layer should answer with. Ownership failures are reported as the
matching NotFound error so callers cannot probe for records they do not own.
"""

from uuid import UUID

from fastapi import HTTPException


class ServiceError(Exception):
    """Base exception for service-layer errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(ServiceError):
    """Entity is absent, or the caller does not own it."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: UUID | None = None):
        message = f"Project {project_id} not found" if project_id else "Project not found"
        super().__init__(message, error_code="PROJECT_NOT_FOUND")


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(message, error_code="APPLICATION_NOT_FOUND")


class ResumeNotFoundError(NotFoundError):
    def __init__(self, application_id: UUID | None = None):
        message = (
            f"No resume found for application {application_id}"
            if application_id
            else "Resume not found"
        )
        super().__init__(message, error_code="RESUME_NOT_FOUND")


class InvalidStateError(ServiceError):
    """Operation is not allowed in the entity's current status."""

    def __init__(self, message: str, expected_state: str | None = None):
        detail = message
        if expected_state:
            detail = f"{message} Expected state: {expected_state}"
        super().__init__(message=detail, error_code="INVALID_STATE", status_code=400)


class DeadlinePassedError(ServiceError):
    """The project's application deadline has passed."""

    def __init__(self):
        super().__init__(
            message="The application deadline for this project has passed.",
            error_code="DEADLINE_PASSED",
            status_code=400,
        )


class ConflictError(ServiceError):
    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message=message, error_code=error_code, status_code=409)


class DuplicateApplicationError(ConflictError):
    """A student already applied to this project."""

    def __init__(self):
        super().__init__(
            "You have already applied to this project.",
            error_code="DUPLICATE_APPLICATION",
        )


class DependencyFailureError(ServiceError):
    """An external dependency (blob store, mail) failed on a critical path."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="DEPENDENCY_FAILURE", status_code=502)


def to_http_exception(e: ServiceError) -> HTTPException:
    """Convert a service error to an HTTPException with a structured detail."""
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    )
