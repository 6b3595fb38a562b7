"""
Application Schemas

Pydantic schemas for the student submission form and the professor views.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from research_engine.modules.applications.models import ApplicationStatus


class RacialEthnicGroup(str, Enum):
    AMERICAN_INDIAN = "American Indian or Indian Alaskan"
    BLACK = "Black or African American"
    HISPANIC = "Hispanic/Latino"
    NATIVE_HAWAIIAN = "Native Hawaiian or Pacific Islander"
    WHITE = "White"
    OTHER = "Other"


class Citizenship(str, Enum):
    US_CITIZEN = "US Citizen"
    PERMANENT_RESIDENT = "Permanent Resident"
    FOREIGN_STUDENT = "Foreign Student"


class WeeklyHours(str, Enum):
    ZERO_TO_FIVE = "0-5"
    SIX_TO_EIGHT = "6-8"
    NINE_TO_ELEVEN = "9-11"
    TWELVE_PLUS = "12+"


class ProjectLength(str, Enum):
    """Desired commitment in semesters."""

    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR_PLUS = "4+"


class StudentName(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class StudentInfo(BaseModel):
    """Student information section."""

    name: StudentName
    c_number: str = Field(..., min_length=1, max_length=20)
    email: EmailStr
    phone_number: str = Field(..., min_length=1, max_length=20)
    racial_ethnic_groups: list[RacialEthnicGroup] = Field(default_factory=list)
    citizenship: Citizenship
    academic_standing: str = Field(..., min_length=1, max_length=50)
    graduation_date: date
    major1_college: str = Field(..., min_length=1, max_length=200)
    major1: str = Field(..., min_length=1, max_length=200)
    has_additional_major: bool = False
    major2_college: str | None = Field(None, max_length=200)
    major2: str | None = Field(None, max_length=200)
    is_pre_health: bool = False
    pre_health_track: str | None = Field(None, max_length=100)
    gpa: float = Field(..., ge=0, le=4)

    @model_validator(mode="after")
    def validate_second_major(self) -> "StudentInfo":
        if self.has_additional_major and not (self.major2 and self.major2_college):
            raise ValueError("major2 and major2_college are required when has_additional_major")
        return self


class AvailabilityInfo(BaseModel):
    """Weekly availability section."""

    weekly_hours: WeeklyHours
    desired_project_length: ProjectLength
    monday_availability: str = Field(..., max_length=100)
    tuesday_availability: str = Field(..., max_length=100)
    wednesday_availability: str = Field(..., max_length=100)
    thursday_availability: str = Field(..., max_length=100)
    friday_availability: str = Field(..., max_length=100)
    saturday_availability: str | None = Field(None, max_length=100)
    sunday_availability: str | None = Field(None, max_length=100)


class AdditionalInfo(BaseModel):
    """Additional information section."""

    has_prev_research_experience: bool
    prev_research_experience: str | None = Field(None, max_length=2000)
    research_interest_description: str = Field(..., min_length=1, max_length=2000)
    has_federal_work_study: bool
    speaks_other_languages: bool = False
    additional_languages: list[str] = Field(default_factory=list)
    comfortable_with_animals: bool


class ApplicationCreate(BaseModel):
    """Form payload for POST /projects/{id}/applications (JSON in the multipart `application` field)."""

    student_info: StudentInfo
    availability: AvailabilityInfo
    additional_info: AdditionalInfo


class ResumeUpload(BaseModel):
    """Resume binary handed to the service after HTTP-level checks."""

    file_name: str
    content: bytes
    content_type: str | None = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    student_email: str
    student_info: dict
    availability: dict
    additional_info: dict
    status: ApplicationStatus
    created_at: datetime
    updated_at: datetime


class ApplicationSubmittedResponse(BaseModel):
    """Public response after submitting an application."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    status: ApplicationStatus
    message: str = "Application submitted. A confirmation email is on its way."


class ResumeLinkResponse(BaseModel):
    url: str
    file_name: str
    mime_type: str
    expires_in_seconds: int
