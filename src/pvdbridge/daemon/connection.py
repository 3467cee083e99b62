"""Connection manager for the pvdd daemon socket.

Keeps one TCP connection to pvdd alive for the lifetime of the process.
A fixed-interval tick drives everything: while disconnected each tick
attempts a connection, while connected each tick writes a blank line so
a half-open socket surfaces as a write error. Inbound bytes are framed
into lines and handed to the line handler in arrival order.

State machine::

    DISCONNECTED -> CONNECTING -> CONNECTED -> ERROR -> DISCONNECTED
                         |                                  ^
                         +----------- (connect failed) -----+
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from pvdbridge.exceptions import DaemonConnectionError
from pvdbridge.protocol.framer import LineFramer
from pvdbridge.protocol.messages import HANDSHAKE

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = 1.0
DEFAULT_READ_SIZE = 4096

Opener = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval reconnection policy.

    ``max_attempts`` counts consecutive failed connection attempts;
    None retries forever.
    """

    interval: float = DEFAULT_RETRY_INTERVAL
    max_attempts: int | None = None

    def should_retry(self, failed_attempts: int) -> bool:
        return self.max_attempts is None or failed_attempts < self.max_attempts


async def open_tcp(host: str, port: int) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a TCP stream to pvdd, wrapping OS errors."""
    try:
        return await asyncio.open_connection(host, port)
    except OSError as e:
        raise DaemonConnectionError(
            f"Can not connect to pvdd on port {port} ({e})", host=host, port=port
        ) from e


class DaemonConnection:
    """Owns the pvdd session and reconnects it forever.

    Args:
        host: pvdd host.
        port: pvdd TCP port.
        on_line: Called with every complete inbound line.
        on_connect: Called after the socket opens, before the handshake
                    is sent and before any inbound data is processed.
        policy: Reconnection interval and attempt limit.
        opener: Coroutine opening the stream pair (injectable for tests).
        sleep: Coroutine used to wait between ticks (injectable for tests).
        read_size: Maximum bytes per read.
    """

    def __init__(
        self,
        host: str,
        port: int,
        on_line: Callable[[str], None],
        on_connect: Callable[[], None] | None = None,
        policy: RetryPolicy | None = None,
        opener: Opener = open_tcp,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._host = host
        self._port = port
        self._on_line = on_line
        self._on_connect = on_connect
        self._policy = policy or RetryPolicy()
        self._open = opener
        self._sleep = sleep
        self._read_size = read_size
        self._state = ConnectionState.DISCONNECTED
        self._writer: asyncio.StreamWriter | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._framer = LineFramer()
        self._failed_attempts = 0
        self._stopped = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    async def run(self) -> None:
        """Tick until stopped or until the retry policy gives up."""
        while not self._stopped:
            if self.is_connected:
                await self.probe()
            else:
                if not self._policy.should_retry(self._failed_attempts):
                    logger.warning(
                        "Giving up on pvdd at %s:%d after %d attempts",
                        self._host, self._port, self._failed_attempts,
                    )
                    break
                await self.connect()
            await self._sleep(self._policy.interval)

    async def connect(self) -> bool:
        """Attempt one connection. Returns True when connected."""
        self._state = ConnectionState.CONNECTING
        try:
            reader, writer = await self._open(self._host, self._port)
        except (DaemonConnectionError, OSError) as e:
            self._failed_attempts += 1
            self._state = ConnectionState.DISCONNECTED
            logger.debug("Can not connect to pvdd on port %d (%s)", self._port, e)
            return False

        self._failed_attempts = 0
        self._writer = writer
        self._framer = LineFramer()
        self._state = ConnectionState.CONNECTED
        if self._on_connect is not None:
            self._on_connect()
        for command in HANDSHAKE:
            self.send(command)
        logger.info("Regular connection established with pvdd")
        self._read_task = asyncio.create_task(self._read_loop(reader))
        return True

    def send(self, command: str) -> bool:
        """Write one command line. Dropped (False) while not connected."""
        if self._writer is None or not self.is_connected:
            logger.debug("Not connected to pvdd, dropping %r", command)
            return False
        try:
            self._writer.write((command + "\n").encode())
        except (OSError, RuntimeError) as e:
            self._lost(f"write failed ({e})")
            return False
        return True

    async def probe(self) -> None:
        """Write a blank line so a stale connection raises an error."""
        writer = self._writer
        if writer is None:
            return
        try:
            writer.write(b"\n")
            await writer.drain()
        except (OSError, RuntimeError) as e:
            self._lost(f"keepalive failed ({e})")

    async def stop(self) -> None:
        """Stop ticking and close the socket (process shutdown)."""
        self._stopped = True
        task = self._read_task
        self._read_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._close_writer()
        self._state = ConnectionState.DISCONNECTED

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        reason = "connection closed by pvdd"
        try:
            while True:
                data = await reader.read(self._read_size)
                if not data:
                    break
                for line in self._framer.feed(data):
                    if not self.is_connected:
                        return
                    self._dispatch(line)
                if not self.is_connected:
                    return
        except OSError as e:
            reason = f"read failed ({e})"
        tail = self._framer.flush()
        if tail is not None:
            self._dispatch(tail)
        self._lost(reason)

    def _dispatch(self, line: str) -> None:
        try:
            self._on_line(line)
        except Exception:
            logger.exception("Dropping pvdd line after handler error: %.80r", line)

    def _lost(self, reason: str) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        self._state = ConnectionState.ERROR
        logger.warning("Lost connection with pvdd on port %d: %s", self._port, reason)
        task = self._read_task
        self._read_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        self._close_writer()
        self._framer.reset()
        self._state = ConnectionState.DISCONNECTED

    def _close_writer(self) -> None:
        writer = self._writer
        self._writer = None
        if writer is None:
            return
        try:
            writer.close()
        except (OSError, RuntimeError) as e:
            logger.debug("Error closing pvdd socket: %s", e)
