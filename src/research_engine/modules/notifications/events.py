"""
Notification Events

Transient, never persisted. Each event carries just enough context to
render its messages without touching the database again. event_id only
correlates log lines; a retried send may deliver a duplicate.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from research_engine.modules.applications.models import ApplicationStatus


@dataclass(frozen=True)
class ApplicationSubmitted:
    """A student applied: confirmation to the student, alert to the professor."""

    application_id: uuid.UUID
    project_title: str
    student_email: str
    student_name: str
    professor_email: str
    student_info: dict[str, Any]
    availability: dict[str, Any]
    additional_info: dict[str, Any]
    resume_url: str | None = None
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class ApplicationStatusChanged:
    application_id: uuid.UUID
    project_title: str
    student_email: str
    status: ApplicationStatus
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class ProjectClosed:
    """Sent once per application that was PENDING when its project closed."""

    project_id: uuid.UUID
    application_id: uuid.UUID
    project_title: str
    student_email: str
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)


NotificationEvent = ApplicationSubmitted | ApplicationStatusChanged | ProjectClosed
