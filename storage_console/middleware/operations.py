"""Operation accounting middleware.

Every request under ``/s3/`` holds one slot of the process-wide
``OperationCounter`` until its response has been sent in full. The slot is
released after the final body chunk, or on the way out when the handler
fails or the client disconnects first.
"""

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from storage_console.operations import OperationCounter, operation_counter

logger = structlog.get_logger()

TRACKED_PREFIX = "/s3/"


class OperationTrackingMiddleware:
    """Count storage requests in flight for the shutdown coordinator."""

    def __init__(self, app: ASGIApp, counter: OperationCounter | None = None) -> None:
        self.app = app
        self.counter = counter if counter is not None else operation_counter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(TRACKED_PREFIX):
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            active = self.counter.decrement()
            logger.debug("operation_ended", path=path, active_operations=active)

        async def send_wrapper(message: Message) -> None:
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                release()

        active = self.counter.increment()
        logger.debug("operation_started", path=path, active_operations=active)
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            release()
