"""Service endpoints: health check and operation status."""

import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter

from storage_console.config import settings
from storage_console.models.responses import HealthResponse, OperationsStatusResponse
from storage_console.operations import operation_counter, shutdown_coordinator

logger = structlog.get_logger()
router = APIRouter(tags=["backend"])

_started_at = time.monotonic()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Liveness, uptime, and in-flight storage operations.",
)
async def health_check() -> HealthResponse:
    shutting_down = shutdown_coordinator.shutting_down
    return HealthResponse(
        status="shutting_down" if shutting_down else "healthy",
        version=settings.api_version,
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=round(time.monotonic() - _started_at, 3),
        active_operations=operation_counter.value,
        shutting_down=shutting_down,
    )


@router.get(
    "/status/operations",
    response_model=OperationsStatusResponse,
    summary="Operation status",
    description="Whether the process can be stopped without interrupting a storage operation.",
)
async def operations_status() -> OperationsStatusResponse:
    """
    Report the process-wide operation counter.

    Deploy tooling polls this before stopping an instance; ``canShutdown``
    is true once no storage request is in flight.
    """
    active = operation_counter.value
    return OperationsStatusResponse(
        active_operations=active,
        can_shutdown=active == 0,
        shutting_down=shutdown_coordinator.shutting_down,
    )
