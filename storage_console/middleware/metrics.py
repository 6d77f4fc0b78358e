"""Request instrumentation for the Prometheus collectors in ``storage_console.metrics``.

Bucket names and object keys are user data, so they never reach a label
value directly: ``normalize_path`` folds them into route templates first.
"""

import re
import time

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from storage_console.metrics import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    REQUEST_IN_FLIGHT,
)

BUCKET_ROUTE = re.compile(r"^/s3/buckets/[^/]+")
OBJECT_ROUTE = re.compile(r"^/objects/.+?(?P<download>/download)?$")

UNMETERED_PATHS = frozenset({"/metrics", "/docs", "/redoc", "/openapi.json"})


def normalize_path(path: str) -> str:
    """Map a request path to its route template.

    Object keys may contain slashes, so everything after ``objects/`` is one
    ``{key}`` placeholder, keeping a trailing ``/download`` when the key
    before it is non-empty::

        /s3/buckets/photos                      -> /s3/buckets/{bucket_name}
        /s3/buckets/photos/objects/2024/a.jpg   -> /s3/buckets/{bucket_name}/objects/{key}
        /s3/buckets/photos/objects/a.jpg/download
                                                -> /s3/buckets/{bucket_name}/objects/{key}/download
    """
    path = "/" + path.strip("/")
    match = BUCKET_ROUTE.match(path)
    if match is None:
        return path

    template = "/s3/buckets/{bucket_name}"
    rest = path[match.end():]
    objects = OBJECT_ROUTE.match(rest)
    if objects is None:
        return template + rest

    template += "/objects/{key}"
    if objects.group("download"):
        template += "/download"
    return template


class MetricsMiddleware:
    """Pure ASGI middleware recording count, latency, and in-flight gauges.

    The status code is taken from the ``http.response.start`` message. A
    request whose handler raises before that message is counted as ``500``.
    Each response also carries ``X-Process-Time`` in seconds.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in UNMETERED_PATHS:
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        endpoint = normalize_path(scope["path"])
        status_code = "500"
        started = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = str(message["status"])
                headers = MutableHeaders(scope=message)
                headers["X-Process-Time"] = f"{time.perf_counter() - started:.6f}"
            await send(message)

        REQUEST_IN_FLIGHT.labels(method=method).inc()
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - started
            )
            REQUEST_COUNT.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            REQUEST_IN_FLIGHT.labels(method=method).dec()
