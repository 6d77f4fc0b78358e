"""Storage Console API - FastAPI application."""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from storage_console.config import settings
from storage_console.errors import ServerError
from storage_console.metrics import ERROR_COUNT, SERVICE_START_TIME, SERVICE_UP, set_service_info
from storage_console.middleware.metrics import MetricsMiddleware, normalize_path
from storage_console.middleware.operations import OperationTrackingMiddleware
from storage_console.regions import region_registry
from storage_console.routers import auth, backend, buckets, metrics, objects
from storage_console.sessions import session_manager


NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def setup_logging() -> None:
    """Route structlog events to stdout: JSON lines in production, colour in debug."""
    level = logging.DEBUG if settings.debug else logging.INFO
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # The AWS SDK logs through stdlib logging and would echo request signatures at DEBUG.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


async def cleanup_expired_sessions_task():
    """Background task to periodically drop expired sessions."""
    logger = structlog.get_logger()

    while True:
        try:
            await asyncio.sleep(settings.session_cleanup_interval_seconds)
            count = session_manager.purge_expired()
            if count > 0:
                logger.info("session_cleanup_completed", deleted_count=count)
        except asyncio.CancelledError:
            logger.info("session_cleanup_task_cancelled")
            break
        except Exception as e:
            logger.error("session_cleanup_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger = structlog.get_logger()
    logger.info(
        "application_startup",
        version=settings.api_version,
        debug=settings.debug,
        default_region=region_registry.default_region_id,
        regions=[r.id for r in region_registry.list_regions()],
    )

    SERVICE_UP.set(1)
    SERVICE_START_TIME.set(time.time())
    set_service_info(version=settings.api_version, default_region=region_registry.default_region_id)

    session_cleanup_task = asyncio.create_task(cleanup_expired_sessions_task())
    logger.info("background_tasks_started", tasks=["session_cleanup"])

    yield

    session_cleanup_task.cancel()
    try:
        await session_cleanup_task
    except asyncio.CancelledError:
        pass

    SERVICE_UP.set(0)
    logger.info("application_shutdown")


# Loggers created at import time pick up this configuration.
setup_logging()
logger = structlog.get_logger()

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
Storage Console API.

Backend for an object storage management console:
- Login with storage access key / secret key (credentials verified against storage)
- Bucket listing with object statistics, creation, and (force) deletion
- Object listing, upload, deletion, pre-signed download URLs, and folders
- Operation tracking for graceful shutdown

## Authentication

`POST /auth/login` returns a session token. Send it as
`Authorization: Bearer <token>` on every `/auth/*` session route and every
`/s3/*` route. Secrets never leave the server after login.
    """,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Track storage operations in flight (feeds the shutdown coordinator)
app.add_middleware(OperationTrackingMiddleware)

# Prometheus request instrumentation, wrapping the middleware added above.
app.add_middleware(MetricsMiddleware)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Bind a request id to every log event emitted while handling the request."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id, method=request.method, path=request.url.path
    )

    started = time.perf_counter()
    logger.debug("request_started")
    response = await call_next(request)
    logger.info(
        "request_completed",
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors into the failure envelope."""
    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", "http_error")
        message = exc.detail.get("message", "")
    else:
        error = "not_found" if exc.status_code == 404 else "http_error"
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": error, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reject malformed requests with a 400 before any storage call."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"

    logger.warning("request_validation_failed", path=request.url.path, message=message)
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "validation_error", "message": message},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    endpoint = normalize_path(request.url.path)
    error_type = type(exc).__name__

    ERROR_COUNT.labels(type=error_type, endpoint=endpoint).inc()

    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=error_type,
        exc_info=True,
    )
    error = ServerError("An internal error occurred")
    content = {"success": False, **error.detail}
    if settings.debug:
        content["details"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Include routers
app.include_router(backend.router)
app.include_router(auth.router)
app.include_router(buckets.router)
app.include_router(objects.router)
app.include_router(metrics.router)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - points at the health check."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "health": "/health",
        "docs": "/docs" if settings.debug else None,
    }
