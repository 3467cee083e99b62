"""Process-wide bridge session.

Owns the state shared between the daemon side and the browser side:
the Event Bus, the PvD registry, the protocol state machine, the daemon
connection and the host clock. One instance exists per process and is
handed to the web layer through ``app.state``.
"""

from __future__ import annotations

import asyncio
import logging
import socket

from pvdbridge.config.settings import Settings, load_settings
from pvdbridge.daemon.connection import DaemonConnection, Opener, RetryPolicy, open_tcp
from pvdbridge.events.bus import EventBus
from pvdbridge.events.clock import HostClock
from pvdbridge.protocol.machine import ProtocolStateMachine
from pvdbridge.registry import PvdRegistry

logger = logging.getLogger(__name__)


class PvdBridge:
    """Wires daemon connection -> state machine -> registry -> Event Bus."""

    def __init__(
        self,
        settings: Settings | None = None,
        hostname: str | None = None,
        opener: Opener = open_tcp,
    ) -> None:
        self.settings = settings or load_settings()
        self.hostname = hostname or socket.gethostname()
        self.bus = EventBus()
        self.registry = PvdRegistry(self.bus)

        daemon = self.settings.daemon
        self.connection = DaemonConnection(
            host=daemon.host,
            port=daemon.port,
            on_line=self.handle_line,
            on_connect=self._on_daemon_connect,
            policy=RetryPolicy(interval=daemon.retry_interval),
            opener=opener,
            read_size=daemon.read_size,
        )
        self.machine = ProtocolStateMachine(self.registry, send=self.connection.send)
        self.clock = HostClock(self.bus, interval=self.settings.clock.interval)
        self._tasks: list[asyncio.Task[None]] = []

    def handle_line(self, line: str) -> None:
        self.machine.handle_line(line)

    def _on_daemon_connect(self) -> None:
        self.machine.reset()

    async def start(self) -> None:
        """Start the daemon connection loop and the host clock."""
        self._tasks = [
            asyncio.create_task(self.connection.run()),
            asyncio.create_task(self.clock.run()),
        ]
        logger.debug("Bridge started")

    async def stop(self) -> None:
        await self.connection.stop()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.debug("Bridge stopped")
