"""Protocol state machine for the pvdd line protocol.

Each inbound line is evaluated in this order:

1. ``PVDID_BEGIN_MULTILINE`` resets the multi-line buffer and enters
   MULTI_LINE, even if a previous block was never closed.
2. ``PVDID_END_MULTILINE`` dispatches the buffer (only in MULTI_LINE).
3. Any other line in MULTI_LINE is appended to the buffer.
4. In SINGLE_LINE the line is parsed and dispatched.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable

from pvdbridge.protocol.messages import (
    BEGIN_MULTILINE,
    END_MULTILINE,
    AttributesMessage,
    DaemonMessage,
    DeleteMessage,
    ListMessage,
    MalformedMessage,
    NewPvdMessage,
    UnknownMessage,
    get_attributes_command,
    parse_line,
    parse_multiline,
)
from pvdbridge.registry import PvdRegistry

logger = logging.getLogger(__name__)


class ParserState(str, enum.Enum):
    SINGLE_LINE = "single_line"
    MULTI_LINE = "multi_line"


class ProtocolStateMachine:
    """Interprets daemon lines and applies them to the registry.

    Args:
        registry: Registry mutated by list/delete/attributes messages.
        send: Callable writing one command line to the daemon; used to
              request the attributes of newly listed PvDs.
    """

    def __init__(self, registry: PvdRegistry, send: Callable[[str], None]) -> None:
        self._registry = registry
        self._send = send
        self._state = ParserState.SINGLE_LINE
        self._buffer: list[str] = []

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def buffer(self) -> str:
        return "".join(self._buffer)

    def reset(self) -> None:
        """Forget any partial multi-line message (new daemon connection)."""
        self._state = ParserState.SINGLE_LINE
        self._buffer = []

    def handle_line(self, line: str) -> None:
        logger.debug("Handling one line: %s (state=%s)", line, self._state.value)

        if line == BEGIN_MULTILINE:
            self._state = ParserState.MULTI_LINE
            self._buffer = []
            return

        if line == END_MULTILINE:
            if self._state is ParserState.MULTI_LINE:
                body = self.buffer
                self.reset()
                logger.debug("Multi-line message: %s", body)
                self.dispatch(parse_multiline(body))
            return

        if self._state is ParserState.MULTI_LINE:
            self._buffer.append(line + "\n")
            return

        self.dispatch(parse_line(line))

    def dispatch(self, message: DaemonMessage) -> None:
        if isinstance(message, ListMessage):
            self._on_list(message)
        elif isinstance(message, DeleteMessage):
            self._registry.unregister(message.pvd_id)
        elif isinstance(message, AttributesMessage):
            self._registry.set_attributes(message.pvd_id, message.attributes)
        elif isinstance(message, MalformedMessage):
            logger.debug("Dropping %r: %s", message.line, message.reason)
        elif isinstance(message, NewPvdMessage):
            # The list that follows is authoritative
            pass
        elif isinstance(message, UnknownMessage):
            if message.line.strip():
                logger.debug("Ignoring unknown message: %r", message.line)

    def _on_list(self, message: ListMessage) -> None:
        for pvd_id in message.pvd_ids:
            if self._registry.register(pvd_id):
                self._send(get_attributes_command(pvd_id))
        self._registry.replace_list(message.pvd_ids)
        logger.debug("New PvD list: %s", list(message.pvd_ids))
