"""Blob store adapters: S3-compatible bucket storage and an in-memory fake.

Stored objects are keyed by their original filename; the key doubles as the
document's storage path.
"""

import asyncio
import io
import logging
from collections.abc import AsyncIterator
from datetime import timedelta
from typing import Any, BinaryIO, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from backend.organizer.config import Settings
from backend.organizer.docs.errors import StorageError

logger = logging.getLogger(__name__)

_BOTO_ERRORS = (BotoCoreError, ClientError)


class BlobStore(Protocol):
    """Durable content store keyed by name."""

    async def save(self, name: str, stream: BinaryIO) -> str:
        """Write `stream` under `name` and return the storage path."""
        ...

    async def access_url(self, path: str) -> str:
        """Return a time-limited URL for reading `path`."""
        ...

    async def open_reader(self, path: str) -> BinaryIO:
        """Open `path` for reading."""
        ...

    def list_keys(self) -> AsyncIterator[str]:
        """Lazily enumerate stored keys, skipping directory markers."""
        ...

    async def delete(self, path: str) -> None:
        """Remove `path`."""
        ...

    async def ensure_bucket(self) -> None:
        """Create the backing container if needed."""
        ...


def is_directory_key(key: str) -> bool:
    """Directory markers are zero-byte keys ending in a slash."""
    return key.endswith("/")


class S3BlobStore:
    """Bucket storage over boto3; blocking calls run in worker threads."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        *,
        url_ttl: timedelta = timedelta(hours=15),
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._url_ttl = url_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3BlobStore":
        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.access_id or None,
            aws_secret_access_key=settings.access_key or None,
            region_name=settings.s3_region,
            config=Config(signature_version="s3v4"),
        )
        return cls(
            client,
            settings.bucket_name,
            url_ttl=timedelta(hours=settings.signed_url_ttl_hours),
        )

    async def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            response = await asyncio.to_thread(self._client.list_buckets)
            buckets = response.get("Buckets", [])
            if not any(b["Name"] == self._bucket for b in buckets):
                await asyncio.to_thread(self._client.create_bucket, Bucket=self._bucket)
                logger.info(f"[blob_store] created bucket {self._bucket}")
        except _BOTO_ERRORS as e:
            logger.error(f"[blob_store] unable to connect to bucket {self._bucket}: {e}")
            raise StorageError(
                "unable to connect to bucket", operation="ensure_bucket", bucket=self._bucket
            ) from e

    async def save(self, name: str, stream: BinaryIO) -> str:
        """Upload `stream` under `name`; the key is returned as the path."""
        try:
            await asyncio.to_thread(
                self._client.put_object, Bucket=self._bucket, Key=name, Body=stream
            )
        except _BOTO_ERRORS as e:
            logger.error(f"[blob_store] failed to upload file {name}: {e}")
            raise StorageError("failed to upload file", operation="save", name=name) from e
        return name

    async def access_url(self, path: str) -> str:
        """Presigned GET URL valid for the configured TTL."""
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": path},
                ExpiresIn=int(self._url_ttl.total_seconds()),
            )
        except _BOTO_ERRORS as e:
            logger.error(f"[blob_store] unable to sign url for {path}: {e}")
            raise StorageError("unable to get path from storage", operation="access_url", path=path) from e

    async def open_reader(self, path: str) -> BinaryIO:
        """Streaming body of the stored object."""
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self._bucket, Key=path
            )
        except _BOTO_ERRORS as e:
            logger.error(f"[blob_store] unable to open {path}: {e}")
            raise StorageError("unable to open reader", operation="open_reader", path=path) from e
        return response["Body"]

    async def delete(self, path: str) -> None:
        """Delete the stored object."""
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self._bucket, Key=path)
        except _BOTO_ERRORS as e:
            logger.error(f"[blob_store] unable to delete {path}: {e}")
            raise StorageError("unable to delete object", operation="delete", path=path) from e

    async def list_keys(self) -> AsyncIterator[str]:
        """Enumerate keys one listing page at a time."""
        paginator = self._client.get_paginator("list_objects_v2")
        pages = iter(paginator.paginate(Bucket=self._bucket))

        while True:
            try:
                page = await asyncio.to_thread(next, pages, None)
            except _BOTO_ERRORS as e:
                logger.error(f"[blob_store] unable to fetch object listing: {e}")
                raise StorageError(
                    "unable to fetch object listing", operation="list_keys", bucket=self._bucket
                ) from e

            if page is None:
                break

            for obj in page.get("Contents", []):
                key = obj["Key"]
                if is_directory_key(key):
                    logger.debug(f"[blob_store] directory found: {key}")
                    continue
                yield key

        logger.info("[blob_store] file search complete")


class InMemoryBlobStore:
    """Dict-backed blob store for tests and local runs.

    Keys are listed in insertion order.
    """

    def __init__(
        self,
        objects: dict[str, bytes] | None = None,
        *,
        base_url: str = "https://blobs.test",
        url_ttl: timedelta = timedelta(hours=15),
    ) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self._base_url = base_url
        self._url_ttl = url_ttl

    async def ensure_bucket(self) -> None:
        return None

    async def save(self, name: str, stream: BinaryIO) -> str:
        self.objects[name] = stream.read()
        return name

    async def access_url(self, path: str) -> str:
        if path not in self.objects:
            raise StorageError("unable to get path from storage", operation="access_url", path=path)
        return f"{self._base_url}/{path}?expires={int(self._url_ttl.total_seconds())}"

    async def open_reader(self, path: str) -> BinaryIO:
        if path not in self.objects:
            raise StorageError("unable to open reader", operation="open_reader", path=path)
        return io.BytesIO(self.objects[path])

    async def delete(self, path: str) -> None:
        self.objects.pop(path, None)

    async def list_keys(self) -> AsyncIterator[str]:
        for key in list(self.objects):
            if is_directory_key(key):
                continue
            yield key
