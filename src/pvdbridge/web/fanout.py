"""Per-WebSocket client fan-out.

Each connected browser gets a ClientSession. On connect it receives the
host name, then every pvdList / pvdAttributes / hostDate event published
on the bus while it stays connected. It may also pull the current state
with ``PVD_GET_LIST`` and ``PVD_GET_ATTRIBUTES`` text frames, answered
from the registry snapshot.

Frames are queued on an unbounded outbox drained by one sender task, so
bus listeners never block and frames leave in publish order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from pvdbridge.bridge import PvdBridge
from pvdbridge.domain.models import (
    ClientRequest,
    EventName,
    PvdRecord,
    ServerMessage,
    host_date_message,
    hostname_message,
    pvd_attributes_message,
    pvd_list_message,
)
from pvdbridge.events.bus import Subscription

logger = logging.getLogger(__name__)


class ClientSession:
    """One browser connection and the bus subscriptions it owns."""

    def __init__(self, websocket: WebSocket, bridge: PvdBridge) -> None:
        self._ws = websocket
        self._bridge = bridge
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._subscriptions: list[Subscription] = []

    @property
    def outbox(self) -> asyncio.Queue[str]:
        return self._outbox

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def push(self, message: ServerMessage) -> None:
        self._outbox.put_nowait(message.to_json())

    def subscribe(self) -> None:
        bus = self._bridge.bus
        self._subscriptions = [
            bus.subscribe(EventName.PVD_LIST, self._on_pvd_list),
            bus.subscribe(EventName.PVD_ATTRIBUTES, self._on_pvd_attributes),
            bus.subscribe(EventName.HOST_DATE, self._on_host_date),
        ]

    def unsubscribe(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    def handle_request(self, text: str) -> int:
        """Answer a client pull request. Returns the number of frames queued."""
        request = ClientRequest.parse(text)
        if request is None:
            logger.debug("Ignoring client request %r", text)
            return 0

        snapshot = self._bridge.registry.snapshot()
        if request is ClientRequest.GET_LIST:
            self.push(pvd_list_message(snapshot.current_list))
            return 1

        for record in snapshot.records:
            self.push(pvd_attributes_message(record))
        return len(snapshot.records)

    async def run(self) -> None:
        """Serve the connection until the browser goes away."""
        await self._ws.accept()
        logger.info("New websocket client")
        self.push(hostname_message(self._bridge.hostname))
        self.subscribe()
        sender = asyncio.create_task(self._send_loop())
        try:
            while True:
                message = await self._ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is not None:
                    self.handle_request(text)
        finally:
            self.unsubscribe()
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            logger.info("Connection closed")

    async def _send_loop(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self._ws.send_text(frame)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.debug("Client went away while sending: %s", e)
                return
            finally:
                self._outbox.task_done()

    # Bus listeners

    def _on_pvd_list(self, pvd_list: list[str]) -> None:
        self.push(pvd_list_message(pvd_list))

    def _on_pvd_attributes(self, record: PvdRecord) -> None:
        self.push(pvd_attributes_message(record))

    def _on_host_date(self, host_date: Any) -> None:
        self.push(host_date_message(str(host_date)))
