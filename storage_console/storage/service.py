"""Bucket and object operations against the S3-compatible object store.

Every public operation takes the caller's credentials and region, resolves a
cached client, and returns an ``OperationResult``. Storage faults are mapped
by ``parse_storage_error`` and never raised past this module; anything else
is a bug and propagates to the global exception handler.

boto3 is synchronous, so each storage call runs in a worker thread via
``asyncio.to_thread``. Those awaits are the only suspension points.
"""

import asyncio
import re
import time
from typing import Any, AsyncIterator

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from storage_console.auth import mask_access_key
from storage_console.config import settings
from storage_console.metrics import (
    BUCKET_STATS_TIMEOUTS,
    FORCE_DELETE_OBJECTS,
    STORAGE_OPERATION_COUNT,
    STORAGE_OPERATION_DURATION,
)
from storage_console.storage.clients import StorageClientCache, client_cache
from storage_console.storage.errors import StorageFault, parse_storage_error
from storage_console.storage.results import (
    BucketSummary,
    DrainReport,
    ObjectEntry,
    OperationResult,
)

logger = structlog.get_logger(__name__)

BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9.-]+$")

STORAGE_ERRORS = (ClientError, BotoCoreError)


def normalize_prefix(prefix: str | None) -> str:
    """Return ``prefix`` ending with a single ``/``, or ``""`` for the root.

    >>> normalize_prefix("photos")
    'photos/'
    >>> normalize_prefix("/photos/2024/")
    'photos/2024/'
    >>> normalize_prefix("")
    ''
    """
    prefix = (prefix or "").lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix += "/"
    return prefix


class StorageService:
    """Storage operations brokered with per-request credentials."""

    def __init__(
        self,
        clients: StorageClientCache | None = None,
        *,
        stats_timeout: float | None = None,
        stats_delay: float | None = None,
        page_size: int | None = None,
        download_url_expires: int | None = None,
    ):
        self.clients = clients if clients is not None else client_cache
        self._stats_timeout = (
            settings.bucket_stats_timeout_seconds if stats_timeout is None else stats_timeout
        )
        self._stats_delay = (
            settings.bucket_stats_delay_seconds if stats_delay is None else stats_delay
        )
        self._page_size = page_size or settings.list_page_size
        self._download_url_expires = (
            download_url_expires or settings.download_url_expires_seconds
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _succeeded(self, operation: str, started: float, data: Any = None, **context) -> OperationResult:
        duration = time.perf_counter() - started
        STORAGE_OPERATION_COUNT.labels(operation=operation, status="success").inc()
        STORAGE_OPERATION_DURATION.labels(operation=operation).observe(duration)
        logger.info(
            f"{operation}_success",
            duration_ms=round(duration * 1000, 2),
            **context,
        )
        return OperationResult.ok(data)

    def _failed(self, operation: str, started: float, exc: Exception, **context) -> OperationResult:
        duration = time.perf_counter() - started
        fault = parse_storage_error(exc)
        STORAGE_OPERATION_COUNT.labels(operation=operation, status="error").inc()
        STORAGE_OPERATION_DURATION.labels(operation=operation).observe(duration)
        logger.error(
            f"{operation}_failed",
            error_code=fault.code,
            error=str(exc),
            duration_ms=round(duration * 1000, 2),
            **context,
        )
        return OperationResult.fail(fault)

    def _rejected(self, operation: str, fault: StorageFault, **context) -> OperationResult:
        STORAGE_OPERATION_COUNT.labels(operation=operation, status="error").inc()
        logger.warning(f"{operation}_rejected", error_code=fault.code, **context)
        return OperationResult.fail(fault)

    async def _pages(self, client: Any, **params: Any) -> AsyncIterator[dict]:
        """Yield ListObjectsV2 pages until the listing is exhausted."""
        params.setdefault("MaxKeys", self._page_size)
        while True:
            response = await asyncio.to_thread(client.list_objects_v2, **params)
            yield response

            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                return
            params["ContinuationToken"] = token

    async def _count_objects(self, client: Any, bucket_name: str) -> tuple[int, int]:
        object_count = 0
        total_size = 0
        async for page in self._pages(client, Bucket=bucket_name):
            for obj in page.get("Contents", []):
                # Zero-byte folder markers are not objects
                if obj["Key"].endswith("/"):
                    continue
                object_count += 1
                total_size += obj.get("Size") or 0
        return object_count, total_size

    async def _bucket_stats(self, client: Any, bucket_name: str) -> tuple[int, int]:
        """Object count and total size, or zeros on timeout or listing failure."""
        try:
            return await asyncio.wait_for(
                self._count_objects(client, bucket_name), timeout=self._stats_timeout
            )
        except asyncio.TimeoutError:
            BUCKET_STATS_TIMEOUTS.inc()
            logger.warning(
                "bucket_stats_timeout",
                bucket_name=bucket_name,
                timeout_seconds=self._stats_timeout,
            )
        except STORAGE_ERRORS as e:
            logger.warning("bucket_stats_failed", bucket_name=bucket_name, error=str(e))
        return 0, 0

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    async def list_buckets(self, access_key: str, secret: str, region: str) -> OperationResult:
        """
        List buckets with per-bucket object statistics.

        Statistics are computed one bucket at a time with a short pause in
        between, to keep the load on the storage API bounded.
        """
        started = time.perf_counter()
        try:
            client = self.clients.get_client(access_key, secret, region)
            response = await asyncio.to_thread(client.list_buckets)
            buckets = response.get("Buckets", [])

            logger.info(
                "list_buckets_computing_stats",
                access_key=mask_access_key(access_key),
                bucket_count=len(buckets),
            )

            summaries: list[BucketSummary] = []
            for index, bucket in enumerate(buckets):
                if index and self._stats_delay:
                    await asyncio.sleep(self._stats_delay)
                object_count, size = await self._bucket_stats(client, bucket["Name"])
                summaries.append(
                    BucketSummary(
                        name=bucket["Name"],
                        creation_date=bucket.get("CreationDate"),
                        region=region,
                        object_count=object_count,
                        size=size,
                    )
                )
        except STORAGE_ERRORS as e:
            return self._failed("list_buckets", started, e, region=region)

        return self._succeeded(
            "list_buckets", started, summaries, region=region, bucket_count=len(summaries)
        )

    async def create_bucket(
        self, access_key: str, secret: str, region: str, bucket_name: str
    ) -> OperationResult:
        if not BUCKET_NAME_PATTERN.match(bucket_name or ""):
            return self._rejected(
                "create_bucket",
                StorageFault("invalid_bucket_name", "Invalid bucket name format"),
                bucket_name=bucket_name,
            )

        started = time.perf_counter()
        try:
            client = self.clients.get_client(access_key, secret, region)
            await asyncio.to_thread(client.create_bucket, Bucket=bucket_name)
        except STORAGE_ERRORS as e:
            return self._failed("create_bucket", started, e, bucket_name=bucket_name, region=region)

        return self._succeeded("create_bucket", started, bucket_name=bucket_name, region=region)

    async def _drain_bucket(self, client: Any, bucket_name: str) -> DrainReport:
        """Delete every object in a bucket, continuing past individual failures."""
        keys: list[str] = []
        async for page in self._pages(client, Bucket=bucket_name):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))

        logger.info("drain_bucket_start", bucket_name=bucket_name, object_count=len(keys))

        report = DrainReport()
        for key in keys:
            try:
                await asyncio.to_thread(client.delete_object, Bucket=bucket_name, Key=key)
            except STORAGE_ERRORS as e:
                report.failed_objects += 1
                FORCE_DELETE_OBJECTS.labels(status="failed").inc()
                logger.warning(
                    "drain_bucket_object_failed",
                    bucket_name=bucket_name,
                    key=key,
                    error=str(e),
                )
                continue
            report.deleted_objects += 1
            FORCE_DELETE_OBJECTS.labels(status="deleted").inc()

        logger.info(
            "drain_bucket_complete",
            bucket_name=bucket_name,
            deleted_objects=report.deleted_objects,
            failed_objects=report.failed_objects,
        )
        return report

    async def delete_bucket(
        self,
        access_key: str,
        secret: str,
        region: str,
        bucket_name: str,
        force: bool = False,
    ) -> OperationResult:
        """
        Delete a bucket.

        With ``force`` the bucket is emptied first: all keys are listed, then
        deleted one at a time in listing order. Failed object deletions are
        logged and counted, and the bucket deletion is attempted regardless.
        Without ``force`` a non-empty bucket fails with ``bucket_not_empty``.
        """
        started = time.perf_counter()
        report = DrainReport()
        try:
            client = self.clients.get_client(access_key, secret, region)
            if force:
                report = await self._drain_bucket(client, bucket_name)
            await asyncio.to_thread(client.delete_bucket, Bucket=bucket_name)
        except STORAGE_ERRORS as e:
            return self._failed(
                "delete_bucket",
                started,
                e,
                bucket_name=bucket_name,
                force=force,
                deleted_objects=report.deleted_objects,
            )

        return self._succeeded(
            "delete_bucket",
            started,
            report,
            bucket_name=bucket_name,
            force=force,
            deleted_objects=report.deleted_objects,
            failed_objects=report.failed_objects,
        )

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    async def list_objects(
        self, access_key: str, secret: str, region: str, bucket_name: str, prefix: str = ""
    ) -> OperationResult:
        """
        List the direct children of ``prefix``.

        Folders come from common prefixes and are named relative to the
        prefix without their trailing slash. Files are keys with no further
        ``/`` after the prefix; the prefix's own marker key is skipped.
        """
        started = time.perf_counter()
        normalized = normalize_prefix(prefix)
        params: dict[str, Any] = {"Bucket": bucket_name, "Delimiter": "/"}
        if normalized:
            params["Prefix"] = normalized

        folders: list[ObjectEntry] = []
        files: list[ObjectEntry] = []
        try:
            client = self.clients.get_client(access_key, secret, region)
            async for page in self._pages(client, **params):
                for common in page.get("CommonPrefixes", []):
                    folder_key = common["Prefix"]
                    name = folder_key[len(normalized):].rstrip("/")
                    if not name or folder_key == normalized:
                        continue
                    folders.append(
                        ObjectEntry(
                            key=folder_key,
                            name=name,
                            last_modified=None,
                            size=0,
                            etag="",
                            storage_class="FOLDER",
                            is_folder=True,
                        )
                    )

                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key == normalized or key.endswith("/") or not key.startswith(normalized):
                        continue
                    name = key[len(normalized):]
                    if "/" in name:
                        continue
                    files.append(
                        ObjectEntry(
                            key=key,
                            name=name,
                            last_modified=obj.get("LastModified"),
                            size=obj.get("Size") or 0,
                            etag=obj.get("ETag", ""),
                            storage_class=obj.get("StorageClass", "STANDARD"),
                            is_folder=False,
                        )
                    )
        except STORAGE_ERRORS as e:
            return self._failed("list_objects", started, e, bucket_name=bucket_name, prefix=normalized)

        return self._succeeded(
            "list_objects",
            started,
            folders + files,
            bucket_name=bucket_name,
            prefix=normalized,
            folder_count=len(folders),
            file_count=len(files),
        )

    async def upload_object(
        self,
        access_key: str,
        secret: str,
        region: str,
        bucket_name: str,
        key: str,
        body: bytes,
        content_type: str | None = None,
    ) -> OperationResult:
        """Store ``body`` under ``key`` with a single PutObject call."""
        started = time.perf_counter()
        try:
            client = self.clients.get_client(access_key, secret, region)
            await asyncio.to_thread(
                client.put_object,
                Bucket=bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type or "application/octet-stream",
            )
        except STORAGE_ERRORS as e:
            return self._failed("upload_object", started, e, bucket_name=bucket_name, key=key)

        return self._succeeded(
            "upload_object",
            started,
            {"key": key, "size": len(body)},
            bucket_name=bucket_name,
            key=key,
            size_bytes=len(body),
        )

    async def delete_object(
        self, access_key: str, secret: str, region: str, bucket_name: str, key: str
    ) -> OperationResult:
        started = time.perf_counter()
        try:
            client = self.clients.get_client(access_key, secret, region)
            await asyncio.to_thread(client.delete_object, Bucket=bucket_name, Key=key)
        except STORAGE_ERRORS as e:
            return self._failed("delete_object", started, e, bucket_name=bucket_name, key=key)

        return self._succeeded("delete_object", started, bucket_name=bucket_name, key=key)

    async def get_download_url(
        self, access_key: str, secret: str, region: str, bucket_name: str, key: str
    ) -> OperationResult:
        """Issue a pre-signed GET URL; no object data passes through here."""
        started = time.perf_counter()
        try:
            client = self.clients.get_client(access_key, secret, region)
            url = client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket_name, "Key": key},
                ExpiresIn=self._download_url_expires,
            )
        except STORAGE_ERRORS as e:
            return self._failed("get_download_url", started, e, bucket_name=bucket_name, key=key)

        return self._succeeded(
            "get_download_url",
            started,
            {"url": url, "expires_in": self._download_url_expires},
            bucket_name=bucket_name,
            key=key,
        )

    async def create_folder(
        self, access_key: str, secret: str, region: str, bucket_name: str, path: str
    ) -> OperationResult:
        """Emulate a directory with a zero-length object whose key ends in ``/``."""
        folder_key = normalize_prefix(path)
        if not folder_key.strip("/"):
            return self._rejected(
                "create_folder",
                StorageFault("invalid_folder_name", "Folder name is required"),
                bucket_name=bucket_name,
            )

        started = time.perf_counter()
        try:
            client = self.clients.get_client(access_key, secret, region)
            await asyncio.to_thread(
                client.put_object, Bucket=bucket_name, Key=folder_key, Body=b"", ContentLength=0
            )
        except STORAGE_ERRORS as e:
            return self._failed("create_folder", started, e, bucket_name=bucket_name, key=folder_key)

        return self._succeeded(
            "create_folder", started, {"key": folder_key}, bucket_name=bucket_name, key=folder_key
        )


# Global service instance
storage_service = StorageService()
