"""
Tests for the professor-side application operations.
"""

import logging
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from research_engine.core.errors import (
    ApplicationNotFoundError,
    DependencyFailureError,
    ProjectNotFoundError,
    ResumeNotFoundError,
)
from research_engine.core.storage import build_resume_key, resume_prefix
from research_engine.modules.applications.models import Application, ApplicationStatus
from research_engine.modules.applications.service import (
    InvalidApplicationTransitionError,
    delete_application,
    get_resume,
    list_project_applications,
    update_application_status,
)


async def _exists(db, application_id) -> bool:
    count = await db.scalar(
        select(func.count()).select_from(Application).where(Application.id == application_id)
    )
    return count == 1


class TestListApplications:
    @pytest.mark.asyncio
    async def test_owner_lists_with_status_filter(
        self, db, professor, make_project, make_application
    ):
        project = await make_project(professor)
        first = await make_application(project, "first@miami.edu")
        second = await make_application(project, "second@miami.edu")
        await make_application(project, "closed@miami.edu", status=ApplicationStatus.CLOSED)

        applications = await list_project_applications(db, professor.id, project.id)
        pending = await list_project_applications(
            db, professor.id, project.id, ApplicationStatus.PENDING
        )

        assert len(applications) == 3
        assert {a.id for a in pending} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_other_professor_sees_not_found(
        self, db, professor, other_professor, make_project, make_application
    ):
        project = await make_project(professor)
        await make_application(project)

        with pytest.raises(ProjectNotFoundError):
            await list_project_applications(db, other_professor.id, project.id)


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_close_application_notifies_student(
        self, db, ctx, transport, professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(project)

        updated = await update_application_status(
            db, ctx, professor.id, application.id, ApplicationStatus.CLOSED
        )
        await ctx.notifier.drain()

        assert updated.status == ApplicationStatus.CLOSED
        [message] = transport.sent
        assert message.to == "jdoe@miami.edu"
        assert "has been closed" in message.text

    @pytest.mark.asyncio
    async def test_same_status_is_allowed(
        self, db, ctx, professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(project)

        updated = await update_application_status(
            db, ctx, professor.id, application.id, ApplicationStatus.PENDING
        )

        assert updated.status == ApplicationStatus.PENDING

    @pytest.mark.asyncio
    async def test_reopen_is_rejected(self, db, ctx, professor, make_project, make_application):
        project = await make_project(professor)
        application = await make_application(project, status=ApplicationStatus.CLOSED)

        with pytest.raises(InvalidApplicationTransitionError):
            await update_application_status(
                db, ctx, professor.id, application.id, ApplicationStatus.PENDING
            )

        assert ctx.notifier.pending == 0

    @pytest.mark.asyncio
    async def test_other_professor_sees_not_found(
        self, db, ctx, professor, other_professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(project)

        with pytest.raises(ApplicationNotFoundError):
            await update_application_status(
                db, ctx, other_professor.id, application.id, ApplicationStatus.CLOSED
            )

        stored = await db.get(Application, application.id)
        assert stored.status == ApplicationStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_application(self, db, ctx, professor):
        with pytest.raises(ApplicationNotFoundError):
            await update_application_status(
                db, ctx, professor.id, uuid4(), ApplicationStatus.CLOSED
            )


class TestDeleteApplication:
    @pytest.mark.asyncio
    async def test_delete_removes_record_and_resume(
        self, db, ctx, clock, storage, professor, make_project, make_application
    ):
        project = await make_project(professor)
        key = build_resume_key(project.id, "cv.pdf", clock.now())
        await storage.upload(key, b"pdf")
        application = await make_application(project, resume_path=key)
        application_id = application.id

        await delete_application(db, ctx, professor.id, application_id)

        assert not await _exists(db, application_id)
        assert storage.deleted == [key]

    @pytest.mark.asyncio
    async def test_resume_delete_failure_is_tolerated(
        self, db, ctx, storage, professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(project, resume_path="applications/x/cv/1-cv.pdf")
        application_id = application.id
        storage.fail_delete = True

        await delete_application(db, ctx, professor.id, application_id)

        assert not await _exists(db, application_id)

    @pytest.mark.asyncio
    async def test_other_professor_cannot_delete(
        self, db, ctx, professor, other_professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(project)

        with pytest.raises(ApplicationNotFoundError):
            await delete_application(db, ctx, other_professor.id, application.id)

        assert await _exists(db, application.id)


class TestGetResume:
    @pytest.mark.asyncio
    async def test_signed_link_for_stored_key(
        self, db, ctx, clock, storage, professor, make_project, make_application
    ):
        project = await make_project(professor)
        key = build_resume_key(project.id, "Jane Doe.docx", clock.now())
        await storage.upload(key, b"docx")
        application = await make_application(project, resume_path=key)

        link = await get_resume(db, ctx, professor.id, application.id)

        assert link.url.startswith(f"https://blobs.test/{key}")
        assert link.file_name == "Jane_Doe.docx"
        assert link.mime_type == (
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )

    @pytest.mark.asyncio
    async def test_falls_back_to_latest_under_prefix(
        self, db, ctx, clock, storage, professor, make_project, make_application, caplog
    ):
        """Records without a stored key use the newest resume uploaded for the project."""
        project = await make_project(professor)
        older = build_resume_key(project.id, "old.pdf", clock.now())
        newer = build_resume_key(project.id, "new.pdf", clock.now() + timedelta(minutes=1))
        await storage.upload(older, b"old")
        await storage.upload(newer, b"new")
        storage.modified[older] = clock.now()
        storage.modified[newer] = clock.now() + timedelta(minutes=1)
        application = await make_application(project, resume_path=None)

        with caplog.at_level(logging.WARNING):
            link = await get_resume(db, ctx, professor.id, application.id)

        assert newer in link.url
        assert link.mime_type == "application/pdf"
        assert "may belong to another applicant" in caplog.text

    @pytest.mark.asyncio
    async def test_no_resume_anywhere(self, db, ctx, professor, make_project, make_application):
        project = await make_project(professor)
        application = await make_application(project, resume_path=None)

        with pytest.raises(ResumeNotFoundError):
            await get_resume(db, ctx, professor.id, application.id)

    @pytest.mark.asyncio
    async def test_signing_failure(
        self, db, ctx, storage, professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(
            project, resume_path=f"{resume_prefix(project.id)}1-cv.pdf"
        )
        storage.fail_sign = True

        with pytest.raises(DependencyFailureError):
            await get_resume(db, ctx, professor.id, application.id)

    @pytest.mark.asyncio
    async def test_other_professor_sees_not_found(
        self, db, ctx, professor, other_professor, make_project, make_application
    ):
        project = await make_project(professor)
        application = await make_application(project, resume_path="k.pdf")

        with pytest.raises(ApplicationNotFoundError):
            await get_resume(db, ctx, other_professor.id, application.id)
