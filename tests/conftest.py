"""
Shared fixtures.

Service tests run against a file-backed SQLite database through aiosqlite,
with in-memory fakes for the blob store and the mail transport and a
clock that only moves when a test moves it.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from research_engine.core.config import Settings
from research_engine.core.context import ServiceContext
from research_engine.core.database import Base
from research_engine.core.email import OutgoingEmail
from research_engine.core.storage import StorageError, StoredObject
from research_engine.modules.applications.models import (
    Application,
    ApplicationStatus,
    normalize_student_key,
)
from research_engine.modules.applications.schemas import ApplicationCreate, ResumeUpload
from research_engine.modules.notifications.dispatcher import NotificationDispatcher
from research_engine.modules.professors.models import Professor
from research_engine.modules.projects.models import Campus, Project, ProjectStatus

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


class FrozenClock:
    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


class FakeStorage:
    """Dict-backed stand-in for ResumeStorage."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.modified: dict[str, datetime] = {}
        self.deleted: list[str] = []
        self.fail_upload = False
        self.fail_delete = False
        self.fail_sign = False

    async def upload(self, key: str, data: bytes, content_type: str | None = None) -> None:
        if self.fail_upload:
            raise StorageError("upload failed")
        self.objects[key] = data
        self.modified[key] = datetime.now(UTC)

    async def delete(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError("delete failed")
        self.objects.pop(key, None)
        self.modified.pop(key, None)
        self.deleted.append(key)

    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        if self.fail_sign:
            raise StorageError("signing failed")
        return f"https://blobs.test/{key}?ttl={ttl_seconds}"

    async def list_objects(self, prefix: str) -> list[StoredObject]:
        return [
            StoredObject(key=key, last_modified=self.modified[key])
            for key in self.objects
            if key.startswith(prefix)
        ]

    async def latest_key(self, prefix: str) -> str | None:
        objects = await self.list_objects(prefix)
        if not objects:
            return None
        return max(objects, key=lambda o: o.last_modified).key


class RecordingTransport:
    """Mail transport that records messages, optionally failing every send."""

    def __init__(self):
        self.sent: list[OutgoingEmail] = []
        self.attempts = 0
        self.fail = False

    async def send(self, message: OutgoingEmail) -> None:
        self.attempts += 1
        if self.fail:
            raise ConnectionError("mail provider unavailable")
        self.sent.append(message)


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        mail_max_attempts=3,
        mail_retry_delay_seconds=0,
        sweep_batch_size=2,
        sweep_concurrency=2,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'research_engine.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def ctx(test_settings, clock, storage, transport, session_factory):
    return ServiceContext(
        settings=test_settings,
        clock=clock,
        storage=storage,
        notifier=NotificationDispatcher(transport, test_settings, retry_delay_seconds=0),
        session_factory=session_factory,
    )


@pytest_asyncio.fixture
async def professor(db):
    prof = Professor(
        email="rivera@miami.edu",
        first_name="Ana",
        last_name="Rivera",
        department="Biology",
    )
    db.add(prof)
    await db.commit()
    return prof


@pytest_asyncio.fixture
async def other_professor(db):
    prof = Professor(
        email="chen@miami.edu",
        first_name="Wei",
        last_name="Chen",
        department="Physics",
    )
    db.add(prof)
    await db.commit()
    return prof


@pytest.fixture
def make_project(db):
    async def _make(
        professor: Professor,
        *,
        status: ProjectStatus = ProjectStatus.PUBLISHED,
        deadline: datetime | None = None,
        title: str = "Coral Reef Genomics",
        is_visible: bool = True,
        **fields,
    ) -> Project:
        project = Project(
            professor_id=professor.id,
            title=title,
            description=fields.pop("description", "Sequencing reef-building corals."),
            campus=fields.pop("campus", Campus.MARINE),
            research_categories=fields.pop("research_categories", ["Biology"]),
            requirements=fields.pop("requirements", ["Python"]),
            status=status,
            application_deadline=deadline,
            is_visible=is_visible,
            **fields,
        )
        db.add(project)
        await db.commit()
        return project

    return _make


@pytest.fixture
def make_application(db):
    async def _make(
        project: Project,
        email: str = "jdoe@miami.edu",
        status: ApplicationStatus = ApplicationStatus.PENDING,
        resume_path: str | None = None,
    ) -> Application:
        application = Application(
            project_id=project.id,
            student_key=normalize_student_key(email),
            student_email=email,
            student_info={"name": {"first_name": "Jane", "last_name": "Doe"}, "email": email},
            availability={"weekly_hours": "6-8"},
            additional_info={},
            resume_path=resume_path,
            status=status,
        )
        db.add(application)
        await db.commit()
        return application

    return _make


def application_payload(email: str = "jdoe@miami.edu", first_name: str = "Jane") -> dict:
    return {
        "student_info": {
            "name": {"first_name": first_name, "last_name": "Doe"},
            "c_number": "C12345678",
            "email": email,
            "phone_number": "305-555-0100",
            "racial_ethnic_groups": ["Hispanic/Latino"],
            "citizenship": "US Citizen",
            "academic_standing": "Junior",
            "graduation_date": "2027-05-15",
            "major1_college": "College of Arts and Sciences",
            "major1": "Biology",
            "has_additional_major": False,
            "is_pre_health": True,
            "pre_health_track": "Pre-Med",
            "gpa": 3.7,
        },
        "availability": {
            "weekly_hours": "9-11",
            "desired_project_length": "2",
            "monday_availability": "9am-12pm",
            "tuesday_availability": "Not available",
            "wednesday_availability": "9am-12pm",
            "thursday_availability": "Not available",
            "friday_availability": "1pm-5pm",
        },
        "additional_info": {
            "has_prev_research_experience": False,
            "research_interest_description": "Marine ecology and coral genetics.",
            "has_federal_work_study": False,
            "comfortable_with_animals": True,
        },
    }


@pytest.fixture
def application_create():
    def _make(email: str = "jdoe@miami.edu", first_name: str = "Jane") -> ApplicationCreate:
        return ApplicationCreate.model_validate(application_payload(email, first_name))

    return _make


@pytest.fixture
def resume():
    return ResumeUpload(
        file_name="Jane Doe CV.pdf",
        content=b"%PDF-1.4 resume",
        content_type="application/pdf",
    )
