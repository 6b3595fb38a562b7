"""
Unit tests for resume storage.

These tests cover:
- Key derivation and filename sanitizing
- MIME type lookup
- boto error wrapping
- Latest-object selection for the resume fallback
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import UUID

import pytest
from botocore.exceptions import ClientError

from research_engine.core.storage import (
    DEFAULT_MIME_TYPE,
    ResumeStorage,
    StorageError,
    build_resume_key,
    file_extension,
    key_file_name,
    mime_type_for,
    resume_prefix,
)

PROJECT_ID = UUID("6f1c2d3e-4b5a-4c6d-8e7f-9a0b1c2d3e4f")
UPLOADED_AT = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
EPOCH_MS = int(UPLOADED_AT.timestamp() * 1000)


def _client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "500", "Message": "boom"}}, operation)


class TestBuildResumeKey:
    """Tests for build_resume_key."""

    def test_key_layout(self):
        """Key is prefix, epoch millis and the sanitized name."""
        key = build_resume_key(PROJECT_ID, "cv.pdf", UPLOADED_AT)
        assert key == f"applications/{PROJECT_ID}/cv/{EPOCH_MS}-cv.pdf"

    def test_unsafe_characters_replaced(self):
        """Spaces and punctuation in the stem become underscores."""
        key = build_resume_key(PROJECT_ID, "Jane Doe (final).PDF", UPLOADED_AT)
        assert key.endswith(f"{EPOCH_MS}-Jane_Doe__final_.pdf")

    def test_name_without_extension(self):
        key = build_resume_key(PROJECT_ID, "resume", UPLOADED_AT)
        assert key == f"{resume_prefix(PROJECT_ID)}{EPOCH_MS}-resume"

    def test_empty_stem_falls_back(self):
        key = build_resume_key(PROJECT_ID, ".pdf", UPLOADED_AT)
        assert key.endswith(f"{EPOCH_MS}-resume.pdf")

    def test_key_file_name_strips_timestamp(self):
        key = build_resume_key(PROJECT_ID, "my-cv.docx", UPLOADED_AT)
        assert key_file_name(key) == "my_cv.docx"


class TestMimeTypes:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("cv.pdf", "application/pdf"),
            ("cv.DOC", "application/msword"),
            (
                "cv.docx",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            ),
            ("cv.txt", DEFAULT_MIME_TYPE),
            ("cv", DEFAULT_MIME_TYPE),
        ],
    )
    def test_mime_type_for(self, filename, expected):
        assert mime_type_for(filename) == expected

    def test_file_extension_lowercased(self):
        assert file_extension("Report.Final.PDF") == "pdf"
        assert file_extension("noext") == ""


class TestResumeStorage:
    """Tests for the S3 adapter with a mocked boto client."""

    @pytest.mark.asyncio
    async def test_upload_puts_object(self):
        client = MagicMock()
        storage = ResumeStorage(client, "bucket")

        await storage.upload("applications/x/cv/1-cv.pdf", b"data")

        client.put_object.assert_called_once_with(
            Bucket="bucket",
            Key="applications/x/cv/1-cv.pdf",
            Body=b"data",
            ContentType="application/pdf",
        )

    @pytest.mark.asyncio
    async def test_upload_error_wrapped(self):
        client = MagicMock()
        client.put_object.side_effect = _client_error("PutObject")
        storage = ResumeStorage(client, "bucket")

        with pytest.raises(StorageError):
            await storage.upload("k.pdf", b"data")

    @pytest.mark.asyncio
    async def test_delete_error_wrapped(self):
        client = MagicMock()
        client.delete_object.side_effect = _client_error("DeleteObject")
        storage = ResumeStorage(client, "bucket")

        with pytest.raises(StorageError):
            await storage.delete("k.pdf")

    @pytest.mark.asyncio
    async def test_signed_url_uses_ttl(self):
        client = MagicMock()
        client.generate_presigned_url.return_value = "https://signed"
        storage = ResumeStorage(client, "bucket")

        url = await storage.signed_url("k.pdf", 600)

        assert url == "https://signed"
        client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "bucket", "Key": "k.pdf"},
            ExpiresIn=600,
        )

    @pytest.mark.asyncio
    async def test_latest_key_picks_most_recent(self):
        client = MagicMock()
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {
                "Contents": [
                    {"Key": "p/cv/1-old.pdf", "LastModified": datetime(2026, 1, 1, tzinfo=UTC)},
                    {"Key": "p/cv/3-new.pdf", "LastModified": datetime(2026, 3, 1, tzinfo=UTC)},
                ]
            },
            {
                "Contents": [
                    {"Key": "p/cv/2-mid.pdf", "LastModified": datetime(2026, 2, 1, tzinfo=UTC)},
                ]
            },
        ]
        client.get_paginator.return_value = paginator
        storage = ResumeStorage(client, "bucket")

        assert await storage.latest_key("p/cv/") == "p/cv/3-new.pdf"
        paginator.paginate.assert_called_once_with(Bucket="bucket", Prefix="p/cv/")

    @pytest.mark.asyncio
    async def test_latest_key_empty_prefix(self):
        client = MagicMock()
        paginator = MagicMock()
        paginator.paginate.return_value = [{}]
        client.get_paginator.return_value = paginator
        storage = ResumeStorage(client, "bucket")

        assert await storage.latest_key("p/cv/") is None
