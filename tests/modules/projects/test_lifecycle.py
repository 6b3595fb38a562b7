"""
Tests for the project state machine and owner operations.

These tests cover:
- Create, update, publish, visibility
- Manual close and its cascade to pending applications
- Close idempotence and repair
- Delete rules
- Ownership: other professors' projects read as not found
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from research_engine.core.errors import InvalidStateError, ProjectNotFoundError
from research_engine.modules.applications.models import Application, ApplicationStatus
from research_engine.modules.applications.service import submit_application
from research_engine.modules.projects.models import Campus, Project, ProjectStatus
from research_engine.modules.projects.schemas import ProjectCreate, ProjectUpdate
from research_engine.modules.projects.service import (
    InvalidProjectTransitionError,
    close_project,
    create_project,
    delete_project,
    publish_project,
    set_project_visibility,
    update_project,
)


async def _statuses(db, project_id) -> list[ApplicationStatus]:
    result = await db.execute(
        select(Application.status).where(Application.project_id == project_id)
    )
    return [row[0] for row in result.all()]


class TestCreateAndUpdate:
    @pytest.mark.asyncio
    async def test_create_defaults_to_draft(self, db, professor):
        project = await create_project(
            db,
            professor.id,
            ProjectCreate(
                title="Mangrove Carbon Flux",
                description="Measuring carbon storage in mangrove soils.",
                campus=Campus.MARINE,
                research_categories=["Ecology", "Chemistry"],
            ),
        )

        assert project.status == ProjectStatus.DRAFT
        assert project.is_visible is True
        assert project.research_categories == ["Ecology", "Chemistry"]
        assert project.professor.email == "rivera@miami.edu"

    @pytest.mark.asyncio
    async def test_create_published(self, db, professor):
        project = await create_project(
            db,
            professor.id,
            ProjectCreate(
                title="Mangrove Carbon Flux",
                description="Measuring carbon storage in mangrove soils.",
                campus=Campus.MARINE,
                status=ProjectStatus.PUBLISHED,
            ),
        )

        assert project.status == ProjectStatus.PUBLISHED

    def test_create_closed_rejected(self):
        with pytest.raises(ValueError):
            ProjectCreate(
                title="t", description="d", campus=Campus.MEDICAL, status=ProjectStatus.CLOSED
            )

    def test_update_cannot_carry_status(self):
        with pytest.raises(ValueError):
            ProjectUpdate.model_validate({"status": "CLOSED"})

    @pytest.mark.asyncio
    async def test_update_fields(self, db, professor, make_project):
        project = await make_project(professor)

        updated = await update_project(
            db, professor.id, project.id, ProjectUpdate(title="Reef Genomics II", positions=3)
        )

        assert updated.title == "Reef Genomics II"
        assert updated.positions == 3
        assert updated.description == "Sequencing reef-building corals."

    @pytest.mark.asyncio
    async def test_update_other_professor(self, db, professor, other_professor, make_project):
        project = await make_project(professor)

        with pytest.raises(ProjectNotFoundError):
            await update_project(db, other_professor.id, project.id, ProjectUpdate(title="Mine"))


class TestPublishAndVisibility:
    @pytest.mark.asyncio
    async def test_publish_draft(self, db, professor, make_project):
        project = await make_project(professor, status=ProjectStatus.DRAFT)

        published = await publish_project(db, professor.id, project.id)

        assert published.status == ProjectStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_publish_closed_rejected(self, db, professor, make_project):
        project = await make_project(professor, status=ProjectStatus.CLOSED)

        with pytest.raises(InvalidProjectTransitionError):
            await publish_project(db, professor.id, project.id)

    @pytest.mark.asyncio
    async def test_hide_published(self, db, professor, make_project):
        project = await make_project(professor)

        hidden = await set_project_visibility(db, professor.id, project.id, False)

        assert hidden.is_visible is False
        assert hidden.status == ProjectStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_closed_visibility_is_fixed(self, db, professor, make_project):
        project = await make_project(professor, status=ProjectStatus.CLOSED, is_visible=False)

        with pytest.raises(InvalidStateError):
            await set_project_visibility(db, professor.id, project.id, True)


class TestCloseProject:
    @pytest.mark.asyncio
    async def test_close_cascades_and_notifies(
        self, db, ctx, transport, professor, make_project, make_application
    ):
        project = await make_project(professor)
        await make_application(project, "a@miami.edu")
        await make_application(project, "b@miami.edu")
        await make_application(project, "c@miami.edu", status=ApplicationStatus.CLOSED)

        result = await close_project(db, ctx, professor.id, project.id)
        await ctx.notifier.drain()

        assert result.project.status == ProjectStatus.CLOSED
        assert result.project.is_visible is False
        assert result.matched == 2
        assert result.modified == 2
        assert result.notified == 2
        assert await _statuses(db, project.id) == [ApplicationStatus.CLOSED] * 3
        assert sorted(m.to for m in transport.sent) == ["a@miami.edu", "b@miami.edu"]
        assert all("No Longer Available" in m.subject for m in transport.sent)

    @pytest.mark.asyncio
    async def test_close_twice_is_idempotent(
        self, db, ctx, transport, professor, make_project, make_application
    ):
        project = await make_project(professor)
        await make_application(project)

        await close_project(db, ctx, professor.id, project.id)
        again = await close_project(db, ctx, professor.id, project.id)
        await ctx.notifier.drain()

        assert again.project.status == ProjectStatus.CLOSED
        assert again.matched == 0
        assert again.modified == 0
        assert again.notified == 0
        assert len(transport.sent) == 1

    @pytest.mark.asyncio
    async def test_close_repairs_half_finished_close(
        self, db, ctx, professor, make_project, make_application
    ):
        """A CLOSED project left with PENDING applications is finished by closing again."""
        project = await make_project(professor, status=ProjectStatus.CLOSED, is_visible=False)
        await make_application(project)

        result = await close_project(db, ctx, professor.id, project.id)

        assert result.modified == 1
        assert await _statuses(db, project.id) == [ApplicationStatus.CLOSED]

    @pytest.mark.asyncio
    async def test_close_with_no_applications(self, db, ctx, professor, make_project):
        project = await make_project(professor)

        result = await close_project(db, ctx, professor.id, project.id)

        assert result.project.status == ProjectStatus.CLOSED
        assert result.matched == 0
        assert ctx.notifier.pending == 0

    @pytest.mark.asyncio
    async def test_close_draft_reads_as_not_found(self, db, ctx, professor, make_project):
        project = await make_project(professor, status=ProjectStatus.DRAFT)

        with pytest.raises(ProjectNotFoundError):
            await close_project(db, ctx, professor.id, project.id)

    @pytest.mark.asyncio
    async def test_close_other_professors_project(
        self, db, ctx, professor, other_professor, make_project, make_application
    ):
        project = await make_project(professor)
        await make_application(project)

        with pytest.raises(ProjectNotFoundError):
            await close_project(db, ctx, other_professor.id, project.id)

        stored = await db.scalar(
            select(Project.status).where(Project.id == project.id)
        )
        assert stored == ProjectStatus.PUBLISHED
        assert await _statuses(db, project.id) == [ApplicationStatus.PENDING]
        assert ctx.notifier.pending == 0

    @pytest.mark.asyncio
    async def test_close_unknown_project(self, db, ctx, professor):
        with pytest.raises(ProjectNotFoundError):
            await close_project(db, ctx, professor.id, uuid4())

    @pytest.mark.asyncio
    async def test_mail_failure_does_not_fail_close(
        self, db, ctx, transport, professor, make_project, make_application
    ):
        project = await make_project(professor)
        await make_application(project)
        transport.fail = True

        result = await close_project(db, ctx, professor.id, project.id)
        await ctx.notifier.drain()

        assert result.modified == 1
        assert transport.attempts == ctx.settings.mail_max_attempts
        assert ctx.notifier.failed == 1


class TestDeleteProject:
    @pytest.mark.asyncio
    async def test_delete_closed_removes_applications_and_resumes(
        self, db, ctx, storage, professor, make_project, make_application
    ):
        project = await make_project(professor, status=ProjectStatus.CLOSED)
        project_id = project.id
        await storage.upload("applications/p/cv/1-a.pdf", b"a")
        await make_application(project, "a@miami.edu", resume_path="applications/p/cv/1-a.pdf")
        await make_application(project, "b@miami.edu", resume_path=None)

        await delete_project(db, ctx, professor.id, project_id)

        assert await db.scalar(select(func.count()).select_from(Project)) == 0
        assert await db.scalar(select(func.count()).select_from(Application)) == 0
        assert storage.deleted == ["applications/p/cv/1-a.pdf"]

    @pytest.mark.asyncio
    async def test_delete_published_rejected(self, db, ctx, professor, make_project):
        project = await make_project(professor)

        with pytest.raises(InvalidStateError):
            await delete_project(db, ctx, professor.id, project.id)

    @pytest.mark.asyncio
    async def test_delete_other_professors_project(
        self, db, ctx, professor, other_professor, make_project
    ):
        project = await make_project(professor, status=ProjectStatus.DRAFT)

        with pytest.raises(ProjectNotFoundError):
            await delete_project(db, ctx, other_professor.id, project.id)


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_apply_then_professor_closes(
        self, db, ctx, clock, transport, professor, make_project, application_create, resume
    ):
        """Two students apply, the professor closes, both are told the project is gone."""
        project = await make_project(professor, deadline=clock.now() + timedelta(days=30))
        await submit_application(db, ctx, project.id, application_create("a@miami.edu"), resume)
        clock.advance(timedelta(seconds=1))
        await submit_application(db, ctx, project.id, application_create("b@miami.edu"), resume)
        await ctx.notifier.drain()
        transport.sent.clear()

        result = await close_project(db, ctx, professor.id, project.id)
        await ctx.notifier.drain()

        assert result.modified == 2
        assert sorted(m.to for m in transport.sent) == ["a@miami.edu", "b@miami.edu"]

        with pytest.raises(InvalidStateError):
            await submit_application(
                db, ctx, project.id, application_create("late@miami.edu"), resume
            )
