"""pvdd text protocol handling.

Public API:
    LineFramer -- splits the inbound byte stream into lines
    parse_line / parse_multiline -- turn lines into tagged messages
    ProtocolStateMachine -- single/multi-line state machine and dispatch
"""

from pvdbridge.protocol.framer import LineFramer
from pvdbridge.protocol.machine import ParserState, ProtocolStateMachine
from pvdbridge.protocol.messages import (
    AttributesMessage,
    DaemonMessage,
    DeleteMessage,
    ListMessage,
    MalformedMessage,
    NewPvdMessage,
    UnknownMessage,
    parse_line,
    parse_multiline,
)

__all__ = [
    "AttributesMessage",
    "DaemonMessage",
    "DeleteMessage",
    "LineFramer",
    "ListMessage",
    "MalformedMessage",
    "NewPvdMessage",
    "ParserState",
    "ProtocolStateMachine",
    "UnknownMessage",
    "parse_line",
    "parse_multiline",
]
