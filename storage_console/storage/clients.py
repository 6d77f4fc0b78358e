"""Per-credential cache of S3 clients.

One boto3 client is kept per (access key, region) pair for the lifetime of
the process. Clients are stateless connection wrappers, so sharing them
between requests carrying the same identity is safe and avoids paying the
client construction and connection setup cost on every call.
"""

import asyncio
from typing import Any, Callable

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from storage_console.auth import mask_access_key
from storage_console.config import settings
from storage_console.metrics import STORAGE_CLIENTS_CACHED
from storage_console.regions import RegionRegistry, region_registry
from storage_console.storage.errors import parse_storage_error
from storage_console.storage.results import OperationResult

logger = structlog.get_logger(__name__)


def cache_key(access_key: str, region: str) -> str:
    return f"{access_key}|{region}"


class StorageClientCache:
    """Lazily creates and memoizes one client per (access key, region)."""

    def __init__(
        self,
        regions: RegionRegistry | None = None,
        client_factory: Callable[..., Any] | None = None,
        request_timeout: int | None = None,
    ):
        self._regions = regions if regions is not None else region_registry
        self._client_factory = client_factory or boto3.client
        self._request_timeout = request_timeout or settings.storage_request_timeout_seconds
        self._clients: dict[str, Any] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def _build_client(self, access_key: str, secret: str, region: str) -> Any:
        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            connect_timeout=self._request_timeout,
            read_timeout=self._request_timeout,
            retries={"mode": "standard", "max_attempts": 1},
        )
        return self._client_factory(
            "s3",
            region_name=region,
            endpoint_url=self._regions.resolve_endpoint(region),
            aws_access_key_id=access_key,
            aws_secret_access_key=secret,
            config=config,
        )

    def _store(self, access_key: str, region: str, client: Any) -> None:
        self._clients[cache_key(access_key, region)] = client
        STORAGE_CLIENTS_CACHED.set(len(self._clients))

    def get_client(self, access_key: str, secret: str, region: str) -> Any:
        """Return the cached client for this identity, creating it on first use."""
        key = cache_key(access_key, region)
        client = self._clients.get(key)
        if client is None:
            client = self._build_client(access_key, secret, region)
            self._store(access_key, region, client)
            logger.info(
                "storage_client_created",
                access_key=mask_access_key(access_key),
                region=region,
                cached_clients=len(self._clients),
            )
        return client

    async def test_connection(self, access_key: str, secret: str, region: str) -> OperationResult:
        """
        Verify credentials with a lightweight bucket listing.

        A fresh client is used so that a wrong secret can never succeed by
        reusing a handle cached for the same access key. On success the
        verified client becomes the cached one for this identity.
        """
        client = self._build_client(access_key, secret, region)
        try:
            await asyncio.to_thread(client.list_buckets)
        except (ClientError, BotoCoreError) as e:
            fault = parse_storage_error(e)
            logger.warning(
                "storage_connection_test_failed",
                access_key=mask_access_key(access_key),
                region=region,
                error_code=fault.code,
                error=str(e),
            )
            return OperationResult.fail(fault)

        self._store(access_key, region, client)
        logger.info(
            "storage_connection_verified",
            access_key=mask_access_key(access_key),
            region=region,
        )
        return OperationResult.ok()


# Global cache instance
client_cache = StorageClientCache()
