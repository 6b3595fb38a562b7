"""
Project Models

A project is a professor-owned research-position listing. Its status moves
through a small state machine; only the lifecycle service writes status
and visibility.
"""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from research_engine.core.database import Base, UTCDateTime
from research_engine.modules.professors.models import Professor


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ProjectStatus(str, enum.Enum):
    """Lifecycle status of a project."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CLOSED = "CLOSED"
    # Declared for future archival; no transition reaches it.
    ARCHIVED = "ARCHIVED"


class Campus(str, enum.Enum):
    CORAL_GABLES = "Coral Gables Campus"
    MEDICAL = "Miller Med Campus"
    MARINE = "Rosenstiel Marine Campus"


# Transitions reachable through service operations.
# CLOSED -> CLOSED is the repair path for a close whose cascade failed midway.
VALID_STATUS_TRANSITIONS: dict[ProjectStatus, set[ProjectStatus]] = {
    ProjectStatus.DRAFT: {ProjectStatus.PUBLISHED},
    ProjectStatus.PUBLISHED: {ProjectStatus.CLOSED},
    ProjectStatus.CLOSED: {ProjectStatus.CLOSED},
    ProjectStatus.ARCHIVED: set(),
}


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    professor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("professors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    campus: Mapped[Campus] = mapped_column(Enum(Campus, name="campus"), nullable=False)

    # Ordered lists, order is display-relevant
    research_categories: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    requirements: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"),
        nullable=False,
        default=ProjectStatus.DRAFT,
    )
    positions: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    application_deadline: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_utc_now, onupdate=_utc_now, nullable=False
    )

    professor: Mapped[Professor] = relationship(Professor, lazy="selectin")

    __table_args__ = (
        CheckConstraint("positions >= 1", name="ck_projects_positions_positive"),
        Index("ix_projects_status_deadline", "status", "application_deadline"),
    )

    @property
    def accepts_applications(self) -> bool:
        return self.status == ProjectStatus.PUBLISHED

    def deadline_passed(self, now: datetime) -> bool:
        """True when a deadline is set and lies strictly before now."""
        return self.application_deadline is not None and self.application_deadline < now

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, status={self.status})>"
