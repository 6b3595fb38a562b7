"""
Tests for resume validation on the public submission endpoint.
"""

from io import BytesIO
from types import SimpleNamespace

import pytest
from fastapi import HTTPException, UploadFile, status

from research_engine.modules.applications.router import _read_resume

MAX_BYTES = 1024


@pytest.fixture
def upload_ctx(test_settings):
    return SimpleNamespace(settings=test_settings.model_copy(update={"resume_max_bytes": MAX_BYTES}))


def _upload(content: bytes, filename: str = "cv.pdf") -> UploadFile:
    return UploadFile(file=BytesIO(content), filename=filename)


class TestReadResume:
    @pytest.mark.asyncio
    async def test_accepts_file_at_limit(self, upload_ctx):
        upload = await _read_resume(_upload(b"x" * MAX_BYTES), upload_ctx)

        assert upload.file_name == "cv.pdf"
        assert len(upload.content) == MAX_BYTES

    @pytest.mark.asyncio
    async def test_oversized_file_is_not_read_in_full(self, upload_ctx):
        """Only one byte past the limit is read before the upload is rejected."""
        resume = _upload(b"x" * (MAX_BYTES * 50))

        with pytest.raises(HTTPException) as exc_info:
            await _read_resume(resume, upload_ctx)

        assert exc_info.value.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert exc_info.value.detail["error"] == "FILE_TOO_LARGE"
        assert resume.file.tell() == MAX_BYTES + 1

    @pytest.mark.asyncio
    async def test_rejects_unsupported_extension(self, upload_ctx):
        resume = _upload(b"MZ", filename="cv.exe")

        with pytest.raises(HTTPException) as exc_info:
            await _read_resume(resume, upload_ctx)

        assert exc_info.value.detail["error"] == "INVALID_FILE_TYPE"
        assert resume.file.tell() == 0

    @pytest.mark.asyncio
    async def test_rejects_empty_file(self, upload_ctx):
        with pytest.raises(HTTPException) as exc_info:
            await _read_resume(_upload(b""), upload_ctx)

        assert exc_info.value.detail["error"] == "EMPTY_FILE"
