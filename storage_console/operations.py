"""Operation accounting and the graceful shutdown state machine.

The process-wide ``OperationCounter`` tracks storage API requests in flight.
The ``ShutdownCoordinator`` uses it to decide when a terminating process may
exit: on a termination signal it stops being RUNNING, polls the counter
until it drains (or a hard deadline passes), and reports the exit code.

Both objects are only touched from the event loop thread, so increments and
decrements need no locking.
"""

import asyncio
import enum
import os
import time
from typing import Callable

import structlog

from storage_console.config import settings
from storage_console.metrics import ACTIVE_OPERATIONS, SHUTDOWN_DRAINING

logger = structlog.get_logger(__name__)


class OperationCounter:
    """Non-negative counter of in-flight storage operations."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def increment(self) -> int:
        self._value += 1
        ACTIVE_OPERATIONS.set(self._value)
        return self._value

    def decrement(self) -> int:
        """Release one operation; an unmatched release leaves the counter at zero."""
        if self._value == 0:
            logger.warning("operation_counter_underflow_ignored")
            return 0
        self._value -= 1
        ACTIVE_OPERATIONS.set(self._value)
        return self._value


class ShutdownState(str, enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


EXIT_OK = 0
EXIT_FORCED = 1


class ShutdownCoordinator:
    """
    Gate process exit on the operation counter reaching zero.

    States:
        RUNNING -> DRAINING   on a termination signal (begin_drain)
        DRAINING -> TERMINATED once the counter is zero (exit code 0) or the
                              drain deadline passes (exit code 1)
    """

    def __init__(
        self,
        counter: OperationCounter,
        poll_interval: float | None = None,
        drain_timeout: float | None = None,
        terminate: Callable[[int], None] = os._exit,
    ):
        self.counter = counter
        self.poll_interval = (
            settings.shutdown_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.drain_timeout = (
            settings.shutdown_drain_timeout_seconds if drain_timeout is None else drain_timeout
        )
        self._terminate = terminate
        self.state = ShutdownState.RUNNING
        self.exit_code: int | None = None
        self.signal_name: str | None = None

    @property
    def shutting_down(self) -> bool:
        return self.state is not ShutdownState.RUNNING

    def begin_drain(self, signal_name: str) -> bool:
        """
        Move from RUNNING to DRAINING.

        Returns:
            True if this call started the drain, False if it was already underway
        """
        if self.state is not ShutdownState.RUNNING:
            logger.info("shutdown_signal_ignored", signal=signal_name, state=self.state.value)
            return False

        self.state = ShutdownState.DRAINING
        self.signal_name = signal_name
        SHUTDOWN_DRAINING.set(1)
        logger.info(
            "shutdown_drain_started",
            signal=signal_name,
            active_operations=self.counter.value,
            poll_interval_seconds=self.poll_interval,
            drain_timeout_seconds=self.drain_timeout,
        )
        return True

    async def wait_for_drain(self) -> int:
        """
        Poll the counter until it reaches zero or the drain deadline passes.

        Returns:
            EXIT_OK when all operations finished, EXIT_FORCED on timeout
        """
        deadline = time.monotonic() + self.drain_timeout

        while self.counter.value > 0:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    "shutdown_drain_timeout",
                    active_operations=self.counter.value,
                    drain_timeout_seconds=self.drain_timeout,
                )
                return self._finish(EXIT_FORCED)

            logger.info("shutdown_waiting_for_operations", active_operations=self.counter.value)
            await asyncio.sleep(min(self.poll_interval, remaining))

        logger.info("shutdown_drain_complete")
        return self._finish(EXIT_OK)

    def _finish(self, exit_code: int) -> int:
        self.state = ShutdownState.TERMINATED
        self.exit_code = exit_code
        return exit_code

    def handle_fault(self, exc: BaseException | None, context: str) -> bool:
        """
        React to an exception nothing else handled.

        With no storage operation in flight the process exits immediately
        with EXIT_FORCED. Otherwise the fault is logged and the process is
        kept alive so in-flight transfers are not severed.

        Returns:
            True if the process was kept alive
        """
        logger.error(
            "unhandled_fault",
            context=context,
            error=str(exc) if exc else None,
            error_type=type(exc).__name__ if exc else None,
            active_operations=self.counter.value,
            exc_info=exc,
        )
        if self.counter.value == 0:
            self._finish(EXIT_FORCED)
            self._terminate(EXIT_FORCED)
            return False

        logger.warning("unhandled_fault_kept_alive", active_operations=self.counter.value)
        return True


# Global instances
operation_counter = OperationCounter()
shutdown_coordinator = ShutdownCoordinator(operation_counter)
