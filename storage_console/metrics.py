"""Prometheus metrics definitions for the Storage Console API.

This module defines all Prometheus metrics used for observability:
- HTTP request metrics (count, duration, in-flight)
- Storage operation metrics (calls, duration) against the object store
- Operation accounting (active storage operations, sessions, cached clients)
- Process metrics (CPU, memory, file descriptors)
"""

import platform
import time
from prometheus_client import Counter, Histogram, Gauge, Info

# Process metrics (process_*) are exported by the default registry.

# =============================================================================
# Service Health Metrics
# =============================================================================

SERVICE_UP = Gauge(
    "storage_console_up",
    "Whether the Storage Console API is up (1) or down (0)"
)

SERVICE_START_TIME = Gauge(
    "storage_console_start_time_seconds",
    "Unix timestamp when the service started"
)

_start_time = time.time()
SERVICE_START_TIME.set(_start_time)
SERVICE_UP.set(1)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

REQUEST_COUNT = Counter(
    "storage_console_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    "storage_console_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

REQUEST_IN_FLIGHT = Gauge(
    "storage_console_requests_in_flight",
    "Number of HTTP requests currently being processed",
    ["method"]
)

# =============================================================================
# Error Metrics
# =============================================================================

ERROR_COUNT = Counter(
    "storage_console_errors_total",
    "Total number of errors by type",
    ["type", "endpoint"]
)

# =============================================================================
# Storage Operation Metrics
# =============================================================================

STORAGE_OPERATION_COUNT = Counter(
    "storage_console_storage_operations_total",
    "Total number of storage operations",
    ["operation", "status"]  # status: success, error
)

STORAGE_OPERATION_DURATION = Histogram(
    "storage_console_storage_operation_duration_seconds",
    "Storage operation duration in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 12.0, 30.0, 60.0, 300.0]
)

BUCKET_STATS_TIMEOUTS = Counter(
    "storage_console_bucket_stats_timeouts_total",
    "Bucket statistics computations that hit the time box"
)

FORCE_DELETE_OBJECTS = Counter(
    "storage_console_force_delete_objects_total",
    "Objects processed while draining buckets for deletion",
    ["status"]  # deleted, failed
)

# =============================================================================
# Operation Accounting
# =============================================================================

ACTIVE_OPERATIONS = Gauge(
    "storage_console_active_operations",
    "Storage API requests currently in flight (gates graceful shutdown)"
)

ACTIVE_SESSIONS = Gauge(
    "storage_console_active_sessions",
    "Number of live operator sessions"
)

STORAGE_CLIENTS_CACHED = Gauge(
    "storage_console_storage_clients_cached",
    "Number of cached storage clients"
)

SHUTDOWN_DRAINING = Gauge(
    "storage_console_shutdown_draining",
    "Whether the service is draining before shutdown (1) or running (0)"
)

AUTH_ATTEMPTS = Counter(
    "storage_console_auth_attempts_total",
    "Login attempts by result",
    ["result"]  # success, failed
)

# =============================================================================
# Service Info
# =============================================================================

SERVICE_INFO = Info(
    "storage_console_service",
    "Storage Console API service information"
)


def set_service_info(version: str, default_region: str) -> None:
    """Set service information metrics."""
    SERVICE_INFO.info({
        "version": version,
        "default_region": default_region,
        "python_version": platform.python_version(),
    })
