"""Tests for the drain-aware server entry point."""

import asyncio
import signal
import sys

import pytest
import uvicorn

from storage_console.main import app
from storage_console.operations import (
    EXIT_FORCED,
    EXIT_OK,
    OperationCounter,
    ShutdownCoordinator,
    ShutdownState,
)
from storage_console.server import DrainingServer, install_excepthook


@pytest.fixture
def counter():
    return OperationCounter()


@pytest.fixture
def exits():
    return []


@pytest.fixture
def coordinator(counter, exits):
    return ShutdownCoordinator(counter, poll_interval=0.01, drain_timeout=0.2, terminate=exits.append)


@pytest.fixture
def server(coordinator):
    return DrainingServer(uvicorn.Config(app), coordinator=coordinator)


async def wait_for_exit(server, timeout=2.0):
    async def poll():
        while not server.should_exit:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


def test_signal_before_startup_exits_immediately(server, coordinator):
    server.handle_exit(signal.SIGTERM, None)

    assert server.should_exit is True
    assert coordinator.state is ShutdownState.DRAINING


async def test_idle_signal_drains_and_exits_zero(server, coordinator):
    server._loop = asyncio.get_running_loop()

    server.handle_exit(signal.SIGTERM, None)
    await wait_for_exit(server)

    assert server.exit_code == EXIT_OK
    assert server.force_exit is False
    assert coordinator.signal_name == "SIGTERM"


async def test_signal_waits_for_in_flight_operation(server, counter):
    server._loop = asyncio.get_running_loop()
    counter.increment()

    server.handle_exit(signal.SIGTERM, None)
    await asyncio.sleep(0.05)
    assert server.should_exit is False

    counter.decrement()
    await wait_for_exit(server)
    assert server.exit_code == EXIT_OK


async def test_drain_timeout_forces_exit(server, counter):
    server._loop = asyncio.get_running_loop()
    counter.increment()

    server.handle_exit(signal.SIGINT, None)
    await wait_for_exit(server)

    assert server.exit_code == EXIT_FORCED
    assert server.force_exit is True


async def test_second_signal_is_ignored(server, coordinator):
    server._loop = asyncio.get_running_loop()

    server.handle_exit(signal.SIGTERM, None)
    server.handle_exit(signal.SIGINT, None)
    await wait_for_exit(server)

    assert coordinator.signal_name == "SIGTERM"


def test_loop_exception_while_idle_terminates(server, exits):
    loop = asyncio.new_event_loop()
    try:
        server._handle_loop_exception(loop, {"message": "boom", "exception": RuntimeError("boom")})
    finally:
        loop.close()

    assert exits == [EXIT_FORCED]


def test_loop_exception_while_busy_keeps_serving(server, counter, exits):
    counter.increment()
    loop = asyncio.new_event_loop()
    try:
        server._handle_loop_exception(loop, {"message": "boom", "exception": RuntimeError("boom")})
    finally:
        loop.close()

    assert exits == []


def test_excepthook_routes_to_coordinator(coordinator, exits, monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    install_excepthook(coordinator)

    error = ValueError("uncaught")
    sys.excepthook(ValueError, error, None)

    assert exits == [EXIT_FORCED]
