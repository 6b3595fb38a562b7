"""
Resume Storage

Stores uploaded resumes in S3 and issues time-limited download URLs.

boto3 is synchronous, so every call is pushed to a worker thread with
asyncio.to_thread to keep the event loop free. All boto errors are
wrapped in StorageError; the services decide whether a failure is fatal
(upload before persisting an application) or best-effort (cleanup).

Key layout:
    applications/{project_id}/cv/{epoch_ms}-{safe_stem}.{safe_ext}
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from research_engine.core.config import Settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")

MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


class StorageError(Exception):
    """Raised when the blob store rejects or fails an operation."""


@dataclass(frozen=True)
class StoredObject:
    key: str
    last_modified: datetime


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot, or an empty string."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def mime_type_for(filename: str) -> str:
    return MIME_TYPES.get(file_extension(filename), DEFAULT_MIME_TYPE)


def resume_prefix(project_id: UUID) -> str:
    return f"applications/{project_id}/cv/"


def build_resume_key(project_id: UUID, filename: str, now: datetime) -> str:
    """
    Derive the storage key for an uploaded resume.

    Non-alphanumeric characters in the original name are replaced with
    underscores. Keys are unique per upload millisecond, not per content.

    Args:
        project_id: Project the application targets
        filename: Original client filename
        now: Upload instant (from the injected Clock)

    Returns:
        The object key
    """
    stem, sep, ext = filename.rpartition(".")
    if not sep:
        stem, ext = filename, ""

    safe_stem = _UNSAFE_CHARS.sub("_", stem) or "resume"
    epoch_ms = int(now.timestamp() * 1000)

    key = f"{resume_prefix(project_id)}{epoch_ms}-{safe_stem}"
    if ext:
        key = f"{key}.{_UNSAFE_CHARS.sub('_', ext.lower())}"
    return key


def key_file_name(key: str) -> str:
    """File name portion of a key, with the timestamp prefix removed."""
    name = key.rsplit("/", 1)[-1]
    _, sep, rest = name.partition("-")
    return rest if sep else name


class ResumeStorage:
    """S3-backed resume store."""

    def __init__(self, client, bucket: str):
        self._client = client
        self._bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResumeStorage":
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url,
        )
        return cls(client, settings.aws_bucket_name)

    async def upload(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """
        Store a binary under key.

        Raises:
            StorageError: If the upload fails
        """
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type or mime_type_for(key),
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e

        logger.info(f"Uploaded resume {key} ({len(data)} bytes)")

    async def delete(self, key: str) -> None:
        """
        Delete the object stored under key.

        Raises:
            StorageError: If the delete fails
        """
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

        logger.info(f"Deleted resume {key}")

    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        """
        Issue a presigned GET URL for key.

        Raises:
            StorageError: If the URL cannot be signed
        """
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to sign URL for {key}: {e}") from e

    async def list_objects(self, prefix: str) -> list[StoredObject]:
        """
        List every object under prefix.

        Raises:
            StorageError: If listing fails
        """

        def _list() -> list[StoredObject]:
            paginator = self._client.get_paginator("list_objects_v2")
            objects = []
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(StoredObject(key=item["Key"], last_modified=item["LastModified"]))
            return objects

        try:
            return await asyncio.to_thread(_list)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to list {prefix}: {e}") from e

    async def latest_key(self, prefix: str) -> str | None:
        """Key of the most recently modified object under prefix, if any."""
        objects = await self.list_objects(prefix)
        if not objects:
            return None
        return max(objects, key=lambda o: o.last_modified).key
