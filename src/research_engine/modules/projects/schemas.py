"""
Project Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from research_engine.modules.projects.models import Campus, ProjectStatus


class ProjectCreate(BaseModel):
    """Request body for POST /projects."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    campus: Campus
    research_categories: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    positions: int = Field(1, ge=1)
    application_deadline: datetime | None = None
    status: ProjectStatus = ProjectStatus.DRAFT
    is_visible: bool = True

    @field_validator("status")
    @classmethod
    def initial_status(cls, v: ProjectStatus) -> ProjectStatus:
        if v not in (ProjectStatus.DRAFT, ProjectStatus.PUBLISHED):
            raise ValueError("A project can only be created as DRAFT or PUBLISHED")
        return v


class ProjectUpdate(BaseModel):
    """
    Request body for PATCH /projects/{id}.

    Status and visibility are deliberately absent: they change only through
    the publish, visibility and close operations. Unknown fields are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    campus: Campus | None = None
    research_categories: list[str] | None = None
    requirements: list[str] | None = None
    positions: int | None = Field(None, ge=1)
    application_deadline: datetime | None = None


class VisibilityUpdate(BaseModel):
    is_visible: bool


class SortField(str, Enum):
    CREATED_AT = "created_at"
    APPLICATION_DEADLINE = "application_deadline"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ProjectQuery(BaseModel):
    """Filters for the public project listing."""

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    departments: list[str] | None = None
    campus: Campus | None = None
    search: str | None = Field(None, max_length=200)
    research_categories: list[str] | None = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("departments", "research_categories", mode="before")
    @classmethod
    def split_csv(cls, v):
        """Accept comma-separated strings as well as lists."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ProfessorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str
    department: str


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    campus: Campus
    professor: ProfessorSummary
    research_categories: list[str]
    requirements: list[str]
    status: ProjectStatus
    positions: int
    application_deadline: datetime | None
    is_visible: bool
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    total: int
    page: int
    limit: int


class CloseProjectResponse(BaseModel):
    """Outcome of a manual close."""

    project: ProjectResponse
    applications_matched: int
    applications_closed: int
    notifications_enqueued: int
