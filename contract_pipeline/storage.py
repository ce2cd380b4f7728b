"""
Object Storage Gateway.

Wraps the four storage primitives the pipeline needs (fetch, store,
list, move) behind one interface with two backends:

- ``S3StorageGateway``: boto3 S3 client, created on first use and kept
  for the life of the gateway instance.
- ``LocalStorageGateway``: a directory on disk standing in for the bucket,
  used when ``USE_LOCAL_STORAGE=true``.

Moves are copy-then-delete and are not atomic. If the delete fails after
a successful copy, the object exists under both keys (duplicated, never
lost).
"""

from __future__ import annotations

import abc
import asyncio
import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from contract_pipeline.config import Settings, get_settings
from contract_pipeline.exceptions import NotFoundError, TransportError
from contract_pipeline.logging_config import get_logger
from contract_pipeline.schemas.document import StorageObject

logger = get_logger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


class StorageGateway(abc.ABC):
    """Contract every storage backend implements."""

    bucket: str

    @abc.abstractmethod
    async def fetch(self, key: str) -> bytes:
        """Return the full body of *key*."""

    @abc.abstractmethod
    async def store(self, content: bytes, key: str, metadata: dict[str, str] | None = None) -> str:
        """Write *content* to *key* and return its locator."""

    @abc.abstractmethod
    async def list(self, prefix: str) -> list[StorageObject]:
        """List objects whose key starts with *prefix*, in key order."""

    @abc.abstractmethod
    async def move(self, source_key: str, destination_key: str) -> None:
        """Copy *source_key* to *destination_key*, then delete the source."""


class S3StorageGateway(StorageGateway):
    """Storage gateway backed by Amazon S3."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._settings = settings
        self.bucket = settings.s3_contract_bucket
        self._client_factory = client_factory or self._create_client
        self._client: Any = None

    def _create_client(self) -> Any:
        settings = self._settings
        credentials: dict[str, str] = {}
        if settings.has_explicit_aws_credentials:
            credentials = {
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
            }
            if settings.aws_session_token:
                credentials["aws_session_token"] = settings.aws_session_token

        return boto3.client("s3", region_name=settings.aws_region, **credentials)

    @property
    def client(self) -> Any:
        """The underlying boto3 client, created on first access."""
        if self._client is None:
            self._client = self._client_factory()
            logger.info("s3_client_initialized", bucket=self.bucket, region=self._settings.aws_region)
        return self._client

    async def fetch(self, key: str) -> bytes:
        logger.info("s3_download", bucket=self.bucket, key=key)
        try:
            return await asyncio.to_thread(self._fetch_sync, key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise NotFoundError(f"s3://{self.bucket}/{key} does not exist") from e
            raise TransportError(f"Failed to download s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise TransportError(f"Failed to download s3://{self.bucket}/{key}: {e}") from e

    def _fetch_sync(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        body = response["Body"]
        try:
            return b"".join(body.iter_chunks())
        finally:
            body.close()

    async def store(self, content: bytes, key: str, metadata: dict[str, str] | None = None) -> str:
        logger.info("s3_upload", bucket=self.bucket, key=key, size=len(content))
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                Metadata=metadata or {},
            )
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"Failed to upload s3://{self.bucket}/{key}: {e}") from e
        return f"s3://{self.bucket}/{key}"

    async def list(self, prefix: str) -> list[StorageObject]:
        try:
            return await asyncio.to_thread(self._list_sync, prefix)
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"Failed to list s3://{self.bucket}/{prefix}: {e}") from e

    def _list_sync(self, prefix: str) -> list[StorageObject]:
        paginator = self.client.get_paginator("list_objects_v2")
        objects: list[StorageObject] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                objects.append(
                    StorageObject(
                        key=item["Key"],
                        size=item.get("Size", 0),
                        last_modified=item.get("LastModified"),
                        etag=item.get("ETag"),
                    )
                )
        return objects

    async def move(self, source_key: str, destination_key: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.copy_object,
                Bucket=self.bucket,
                CopySource={"Bucket": self.bucket, "Key": source_key},
                Key=destination_key,
            )
        except (ClientError, BotoCoreError) as e:
            raise TransportError(f"Failed to copy {source_key} to {destination_key}: {e}") from e

        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=source_key)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "s3_delete_after_copy_failed",
                source=source_key,
                destination=destination_key,
                error=str(e),
            )
            raise TransportError(
                f"Copied {source_key} to {destination_key} but failed to delete the source: {e}"
            ) from e

        logger.info("document_moved", source=source_key, destination=destination_key)


class LocalStorageGateway(StorageGateway):
    """Storage gateway that keeps the bucket in a local directory."""

    METADATA_DIR = ".metadata"

    def __init__(self, settings: Settings) -> None:
        self.bucket = settings.s3_contract_bucket
        self.root = Path(settings.local_storage_dir) / self.bucket

    def _path(self, key: str) -> Path:
        return self.root / key

    def _metadata_path(self, key: str) -> Path:
        return self.root / self.METADATA_DIR / f"{key}.json"

    async def fetch(self, key: str) -> bytes:
        logger.info("local_read", key=key)
        try:
            return await asyncio.to_thread(self._path(key).read_bytes)
        except FileNotFoundError as e:
            raise NotFoundError(f"{key} does not exist in {self.root}") from e
        except OSError as e:
            raise TransportError(f"Failed to read {key}: {e}") from e

    async def store(self, content: bytes, key: str, metadata: dict[str, str] | None = None) -> str:
        logger.info("local_write", key=key, size=len(content))
        try:
            await asyncio.to_thread(self._store_sync, content, key, metadata or {})
        except OSError as e:
            raise TransportError(f"Failed to write {key}: {e}") from e
        return self._path(key).resolve().as_uri()

    def _store_sync(self, content: bytes, key: str, metadata: dict[str, str]) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if metadata:
            meta_path = self._metadata_path(key)
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.write_text(json.dumps(metadata), encoding="utf-8")

    async def list(self, prefix: str) -> list[StorageObject]:
        try:
            return await asyncio.to_thread(self._list_sync, prefix)
        except OSError as e:
            raise TransportError(f"Failed to list {prefix}: {e}") from e

    def _list_sync(self, prefix: str) -> list[StorageObject]:
        if not self.root.exists():
            return []

        objects: list[StorageObject] = []
        for path in self.root.rglob("*"):
            if not path.is_file():
                continue
            key = path.relative_to(self.root).as_posix()
            if key.startswith(f"{self.METADATA_DIR}/") or not key.startswith(prefix):
                continue
            stat = path.stat()
            objects.append(
                StorageObject(
                    key=key,
                    size=stat.st_size,
                    last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        return sorted(objects, key=lambda obj: obj.key)

    async def move(self, source_key: str, destination_key: str) -> None:
        source = self._path(source_key)
        try:
            await asyncio.to_thread(self._copy_sync, source_key, destination_key)
        except FileNotFoundError as e:
            raise NotFoundError(f"{source_key} does not exist in {self.root}") from e
        except OSError as e:
            raise TransportError(f"Failed to copy {source_key} to {destination_key}: {e}") from e

        try:
            await asyncio.to_thread(source.unlink)
            await asyncio.to_thread(self._metadata_path(source_key).unlink, missing_ok=True)
        except OSError as e:
            raise TransportError(
                f"Copied {source_key} to {destination_key} but failed to delete the source: {e}"
            ) from e

        logger.info("document_moved", source=source_key, destination=destination_key)

    def _copy_sync(self, source_key: str, destination_key: str) -> None:
        destination = self._path(destination_key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self._path(source_key), destination)

        meta_source = self._metadata_path(source_key)
        if meta_source.exists():
            meta_destination = self._metadata_path(destination_key)
            meta_destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(meta_source, meta_destination)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def build_storage_gateway(settings: Settings | None = None) -> StorageGateway:
    """Construct the gateway selected by configuration. Callers own the instance."""
    settings = settings or get_settings()
    if settings.use_local_storage:
        logger.info("local_storage_enabled", root=settings.local_storage_dir, bucket=settings.s3_contract_bucket)
        return LocalStorageGateway(settings)
    return S3StorageGateway(settings)
