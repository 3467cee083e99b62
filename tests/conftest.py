"""Shared test fixtures for the pvdbridge test suite.

Provides the in-memory bridge pieces (bus, registry, state machine),
an event recorder, and fakes standing in for the pvdd socket and for a
browser WebSocket.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import pytest

from pvdbridge.bridge import PvdBridge
from pvdbridge.config.settings import Settings
from pvdbridge.domain.models import EventName
from pvdbridge.events.bus import EventBus
from pvdbridge.protocol.machine import ProtocolStateMachine
from pvdbridge.registry import PvdRegistry


# ---------------------------------------------------------------------------
# Core Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry(bus: EventBus) -> PvdRegistry:
    return PvdRegistry(bus)


@pytest.fixture
def sent() -> list[str]:
    """Commands the state machine sent towards the daemon."""
    return []


@pytest.fixture
def machine(registry: PvdRegistry, sent: list[str]) -> ProtocolStateMachine:
    return ProtocolStateMachine(registry, send=sent.append)


class EventRecorder:
    """Records every (name, payload) published on a bus."""

    def __init__(self, bus: EventBus) -> None:
        self.events: list[tuple[str, Any]] = []
        for name in EventName:
            bus.subscribe(name, lambda payload, name=name: self.events.append((name.value, payload)))

    def of(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def bridge() -> PvdBridge:
    """A bridge that is never started; lines are fed with handle_line()."""
    return PvdBridge(Settings(), hostname="testhost")


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a predicate while letting the event loop run."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.005)

    return _wait


# ---------------------------------------------------------------------------
# pvdd Socket Fakes
# ---------------------------------------------------------------------------


class FakeWriter:
    """Stands in for asyncio.StreamWriter, recording written bytes."""

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.closed = False
        self.fail: Exception | None = None

    @property
    def lines(self) -> list[str]:
        return self.buffer.decode().split("\n")[:-1]

    def write(self, data: bytes) -> None:
        if self.fail is not None:
            raise self.fail
        self.buffer += data

    async def drain(self) -> None:
        if self.fail is not None:
            raise self.fail

    def close(self) -> None:
        self.closed = True


class FakeDaemon:
    """Opener handing out a fresh StreamReader/FakeWriter pair per connect."""

    def __init__(self) -> None:
        self.reader: asyncio.StreamReader | None = None
        self.writer = FakeWriter()
        self.connects = 0

    async def open(self, host: str, port: int) -> tuple[asyncio.StreamReader, FakeWriter]:
        self.connects += 1
        self.reader = asyncio.StreamReader()
        self.writer = FakeWriter()
        return self.reader, self.writer

    def send(self, text: str) -> None:
        assert self.reader is not None
        self.reader.feed_data(text.encode())

    def hang_up(self) -> None:
        assert self.reader is not None
        self.reader.feed_eof()


@pytest.fixture
def fake_daemon() -> FakeDaemon:
    return FakeDaemon()


# ---------------------------------------------------------------------------
# Browser WebSocket Fake
# ---------------------------------------------------------------------------


class FakeWebSocket:
    """Minimal stand-in for fastapi.WebSocket driven from the test."""

    def __init__(self) -> None:
        self.accepted = False
        self.sent: list[str] = []
        self._inbound: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]

    async def accept(self) -> None:
        self.accepted = True

    async def receive(self) -> dict[str, Any]:
        return await self._inbound.get()

    async def send_text(self, data: str) -> None:
        self.sent.append(data)

    def client_text(self, text: str) -> None:
        self._inbound.put_nowait({"type": "websocket.receive", "text": text})

    def client_bytes(self, data: bytes) -> None:
        self._inbound.put_nowait({"type": "websocket.receive", "bytes": data})

    def client_close(self) -> None:
        self._inbound.put_nowait({"type": "websocket.disconnect", "code": 1000})


@pytest.fixture
def websocket() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def make_websocket() -> type[FakeWebSocket]:
    return FakeWebSocket
