"""
Application Models

A student's submission against one project. The submission form is kept
as three JSON documents (student info, availability, additional info);
the lifecycle only reads the student's email and name from them.
"""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Enum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from research_engine.core.database import Base, UTCDateTime
from research_engine.modules.projects.models import Project


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CLOSED = "CLOSED"


VALID_STATUS_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.PENDING: {ApplicationStatus.CLOSED},
    # Terminal
    ApplicationStatus.CLOSED: set(),
}


def normalize_student_key(email: str) -> str:
    """Student identity used for duplicate detection."""
    return email.strip().lower()


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    student_key: Mapped[str] = mapped_column(String(255), nullable=False)
    student_email: Mapped[str] = mapped_column(String(255), nullable=False)

    student_info: Mapped[dict] = mapped_column(JSON, nullable=False)
    availability: Mapped[dict] = mapped_column(JSON, nullable=False)
    additional_info: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Blob key, set once at creation
    resume_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utc_now, onupdate=_utc_now, nullable=False
    )

    project: Mapped[Project] = relationship(Project, lazy="selectin")

    __table_args__ = (
        UniqueConstraint("project_id", "student_key", name="uq_applications_project_student"),
        Index("ix_applications_project_status", "project_id", "status"),
    )

    @property
    def student_name(self) -> str:
        name = self.student_info.get("name") or {}
        full = f"{name.get('first_name', '')} {name.get('last_name', '')}".strip()
        return full or self.student_email

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, project_id={self.project_id}, status={self.status})>"
