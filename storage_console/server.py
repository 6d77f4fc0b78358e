"""
Process entry point with drain-aware shutdown.

uvicorn stops accepting work as soon as it sees SIGTERM/SIGINT. Here the
signal is routed through the ShutdownCoordinator instead: the server keeps
serving until every in-flight storage request has finished (or the drain
deadline passes), then exits with the coordinator's exit code.

Usage:
    python -m storage_console.server --host 0.0.0.0 --port 5000
"""

import argparse
import asyncio
import signal
import sys
from types import FrameType

import structlog
import uvicorn

from storage_console.config import settings
from storage_console.main import app
from storage_console.operations import EXIT_OK, ShutdownCoordinator, shutdown_coordinator

logger = structlog.get_logger(__name__)


class DrainingServer(uvicorn.Server):
    """uvicorn server whose exit is gated on the operation counter."""

    def __init__(self, config: uvicorn.Config, coordinator: ShutdownCoordinator | None = None):
        super().__init__(config)
        self.coordinator = coordinator if coordinator is not None else shutdown_coordinator
        self.exit_code = EXIT_OK
        self._loop: asyncio.AbstractEventLoop | None = None
        self._drain_task: asyncio.Task | None = None

    async def startup(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        self._loop.set_exception_handler(self._handle_loop_exception)
        await super().startup(sockets=sockets)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        signal_name = signal.Signals(sig).name
        if not self.coordinator.begin_drain(signal_name):
            return

        if self._loop is None:
            # Signal arrived before startup finished; nothing can be in flight
            self.should_exit = True
            return
        self._loop.call_soon_threadsafe(self._start_drain)

    def _start_drain(self) -> None:
        self._drain_task = asyncio.ensure_future(self._drain())

    async def _drain(self) -> None:
        self.exit_code = await self.coordinator.wait_for_drain()
        logger.info(
            "server_stopping",
            signal=self.coordinator.signal_name,
            exit_code=self.exit_code,
        )
        if self.exit_code != EXIT_OK:
            self.force_exit = True
        self.should_exit = True

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        self.coordinator.handle_fault(context.get("exception"), context.get("message", "event_loop"))


def install_excepthook(coordinator: ShutdownCoordinator) -> None:
    """Route uncaught main-thread exceptions through the coordinator."""

    def excepthook(exc_type, exc, tb):
        coordinator.handle_fault(exc, "main_thread")

    sys.excepthook = excepthook


def run_server(host: str, port: int) -> int:
    """Serve the API until a drained shutdown; returns the exit code."""
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    server = DrainingServer(config)
    install_excepthook(server.coordinator)

    logger.info("server_starting", host=host, port=port)
    server.run()
    return server.exit_code


def main():
    """Entry point for the API server."""
    parser = argparse.ArgumentParser(description="Storage Console API")
    parser.add_argument("--host", default=settings.host, help="Bind host")
    parser.add_argument("--port", type=int, default=settings.port, help="Bind port")

    args = parser.parse_args()

    sys.exit(run_server(args.host, args.port))


if __name__ == "__main__":
    main()
