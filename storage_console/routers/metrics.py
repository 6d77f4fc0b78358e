"""Prometheus metrics endpoint router.

Exposes /metrics endpoint for Prometheus scraping.
"""

import structlog
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from storage_console.config import settings
from storage_console.metrics import (
    ACTIVE_OPERATIONS,
    ACTIVE_SESSIONS,
    STORAGE_CLIENTS_CACHED,
    set_service_info,
)
from storage_console.operations import operation_counter
from storage_console.regions import region_registry
from storage_console.sessions import session_manager
from storage_console.storage.clients import client_cache

logger = structlog.get_logger()

router = APIRouter(tags=["metrics"])


def collect_runtime_metrics() -> None:
    """Refresh gauges that mirror in-process state."""
    ACTIVE_OPERATIONS.set(operation_counter.value)
    ACTIVE_SESSIONS.set(len(list(session_manager.store.values())))
    STORAGE_CLIENTS_CACHED.set(len(client_cache))


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics endpoint",
    description="Returns metrics in Prometheus text format for scraping.",
)
async def get_metrics():
    """
    Expose Prometheus metrics.

    Not authenticated, so Prometheus can scrape without credentials.
    """
    set_service_info(version=settings.api_version, default_region=region_registry.default_region_id)
    collect_runtime_metrics()

    return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
