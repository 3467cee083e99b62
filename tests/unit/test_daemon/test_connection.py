"""Tests for the pvdd connection manager (fake streams, fake clock)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from pvdbridge.daemon.connection import ConnectionState, DaemonConnection, RetryPolicy
from pvdbridge.exceptions import DaemonConnectionError

HANDSHAKE_LINES = [
    "PVDID_GET_LIST",
    "PVDID_SUBSCRIBE_NOTIFICATIONS",
    "PVDID_SUBSCRIBE *",
]


class TestRetryPolicy:
    def test_defaults_retry_forever(self) -> None:
        policy = RetryPolicy()
        assert policy.interval == 1.0
        assert policy.should_retry(10_000)

    def test_attempt_limit(self) -> None:
        policy = RetryPolicy(max_attempts=2)
        assert policy.should_retry(1)
        assert not policy.should_retry(2)


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_sends_handshake(self, fake_daemon) -> None:
        conn = DaemonConnection("localhost", 10101, on_line=print, opener=fake_daemon.open)
        assert await conn.connect() is True
        assert conn.state is ConnectionState.CONNECTED
        assert fake_daemon.writer.lines == HANDSHAKE_LINES
        await conn.stop()

    @pytest.mark.asyncio
    async def test_on_connect_runs_before_handshake(self, fake_daemon) -> None:
        seen: list[int] = []
        conn = DaemonConnection(
            "localhost", 10101,
            on_line=print,
            on_connect=lambda: seen.append(len(fake_daemon.writer.buffer)),
            opener=fake_daemon.open,
        )
        await conn.connect()
        assert seen == [0]
        await conn.stop()

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        opener = AsyncMock(side_effect=DaemonConnectionError("refused", "localhost", 10101))
        conn = DaemonConnection("localhost", 10101, on_line=print, opener=opener)
        assert await conn.connect() is False
        assert conn.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_raw_os_error_from_opener(self) -> None:
        opener = AsyncMock(side_effect=ConnectionRefusedError())
        conn = DaemonConnection("localhost", 10101, on_line=print, opener=opener)
        assert await conn.connect() is False
        assert conn.state is ConnectionState.DISCONNECTED

    def test_send_while_disconnected_is_dropped(self) -> None:
        conn = DaemonConnection("localhost", 10101, on_line=print)
        assert conn.send("PVDID_GET_LIST") is False


class TestReading:
    @pytest.mark.asyncio
    async def test_lines_reassembled_across_reads(self, fake_daemon, wait_until) -> None:
        lines: list[str] = []
        conn = DaemonConnection("localhost", 10101, on_line=lines.append, opener=fake_daemon.open)
        await conn.connect()
        fake_daemon.send("PVDID_LI")
        fake_daemon.send("ST a b\nPVDID_DEL")
        fake_daemon.send("_PVDID a\n")
        await wait_until(lambda: len(lines) == 2)
        assert lines == ["PVDID_LIST a b", "PVDID_DEL_PVDID a"]
        await conn.stop()

    @pytest.mark.asyncio
    async def test_eof_disconnects(self, fake_daemon, wait_until) -> None:
        lines: list[str] = []
        conn = DaemonConnection("localhost", 10101, on_line=lines.append, opener=fake_daemon.open)
        await conn.connect()
        writer = fake_daemon.writer
        fake_daemon.send("PVDID_LIST a\nPVDID_DEL_PVDID a")
        fake_daemon.hang_up()
        await wait_until(lambda: conn.state is ConnectionState.DISCONNECTED)
        assert writer.closed
        assert lines == ["PVDID_LIST a", "PVDID_DEL_PVDID a"]
        assert conn.send("PVDID_GET_LIST") is False

    @pytest.mark.asyncio
    async def test_send_writes_newline_terminated_command(self, fake_daemon) -> None:
        conn = DaemonConnection("localhost", 10101, on_line=print, opener=fake_daemon.open)
        await conn.connect()
        assert conn.send("PVDID_GET_ATTRIBUTES router1") is True
        assert fake_daemon.writer.lines[-1] == "PVDID_GET_ATTRIBUTES router1"
        await conn.stop()


class TestKeepalive:
    @pytest.mark.asyncio
    async def test_probe_writes_blank_line(self, fake_daemon) -> None:
        conn = DaemonConnection("localhost", 10101, on_line=print, opener=fake_daemon.open)
        await conn.connect()
        await conn.probe()
        assert fake_daemon.writer.lines == HANDSHAKE_LINES + [""]
        assert conn.is_connected
        await conn.stop()

    @pytest.mark.asyncio
    async def test_probe_failure_marks_connection_lost(self, fake_daemon) -> None:
        conn = DaemonConnection("localhost", 10101, on_line=print, opener=fake_daemon.open)
        await conn.connect()
        writer = fake_daemon.writer
        writer.fail = ConnectionResetError("reset by peer")
        await conn.probe()
        assert conn.state is ConnectionState.DISCONNECTED
        assert writer.closed
        await conn.stop()


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_retries_on_every_tick(self) -> None:
        opener = AsyncMock(side_effect=DaemonConnectionError("refused"))
        sleeps: list[float] = []
        conn: DaemonConnection

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)
            if len(sleeps) == 3:
                await conn.stop()

        conn = DaemonConnection(
            "localhost", 10101, on_line=print, opener=opener, sleep=fake_sleep
        )
        await conn.run()
        assert opener.await_count == 3
        assert sleeps == [1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        opener = AsyncMock(side_effect=DaemonConnectionError("refused"))
        sleep = AsyncMock()
        conn = DaemonConnection(
            "localhost", 10101,
            on_line=print,
            policy=RetryPolicy(interval=0.5, max_attempts=2),
            opener=opener,
            sleep=sleep,
        )
        await conn.run()
        assert opener.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_probes_while_connected(self, fake_daemon) -> None:
        ticks = 0
        conn: DaemonConnection

        async def fake_sleep(delay: float) -> None:
            nonlocal ticks
            ticks += 1
            if ticks == 3:
                await conn.stop()

        conn = DaemonConnection(
            "localhost", 10101, on_line=print, opener=fake_daemon.open, sleep=fake_sleep
        )
        await conn.run()
        assert fake_daemon.connects == 1
        assert fake_daemon.writer.lines == HANDSHAKE_LINES + ["", ""]

    @pytest.mark.asyncio
    async def test_reconnects_after_loss(self, fake_daemon, wait_until) -> None:
        connects: list[int] = []
        ticks = 0
        conn: DaemonConnection

        async def fake_sleep(delay: float) -> None:
            nonlocal ticks
            ticks += 1
            if ticks == 1:
                fake_daemon.hang_up()
                await wait_until(lambda: not conn.is_connected)
            else:
                await conn.stop()

        conn = DaemonConnection(
            "localhost", 10101,
            on_line=print,
            on_connect=lambda: connects.append(fake_daemon.connects),
            opener=fake_daemon.open,
            sleep=fake_sleep,
        )
        await conn.run()
        assert fake_daemon.connects == 2
        assert connects == [1, 2]
        assert fake_daemon.writer.lines == HANDSHAKE_LINES


class TestLineHandlerFailures:
    @pytest.mark.asyncio
    async def test_handler_error_drops_only_that_line(self, fake_daemon, wait_until) -> None:
        lines: list[str] = []

        def on_line(line: str) -> None:
            if line == "boom":
                raise RecursionError("maximum recursion depth exceeded")
            lines.append(line)

        conn = DaemonConnection("localhost", 10101, on_line=on_line, opener=fake_daemon.open)
        await conn.connect()
        fake_daemon.send("boom\nPVDID_LIST a\n")
        fake_daemon.send("PVDID_LIST a b\n")
        await wait_until(lambda: len(lines) == 2)
        assert lines == ["PVDID_LIST a", "PVDID_LIST a b"]
        assert conn.is_connected
        await conn.stop()

    @pytest.mark.asyncio
    async def test_loss_during_dispatch_stops_remaining_lines(self, fake_daemon, wait_until) -> None:
        lines: list[str] = []
        conn: DaemonConnection

        def on_line(line: str) -> None:
            lines.append(line)
            fake_daemon.writer.fail = ConnectionResetError("reset by peer")
            conn.send("PVDID_GET_ATTRIBUTES a")

        conn = DaemonConnection("localhost", 10101, on_line=on_line, opener=fake_daemon.open)
        await conn.connect()
        writer = fake_daemon.writer
        fake_daemon.send("PVDID_LIST a\nPVDID_LIST a b\nPVDID_LIST c\n")
        await wait_until(lambda: conn.state is ConnectionState.DISCONNECTED)
        await asyncio.sleep(0)
        assert lines == ["PVDID_LIST a"]
        assert writer.closed
