"""Domain models for pvdbridge.

Public API:
    PvdRecord, RegistrySnapshot -- registry state
    EventName -- Event Bus channels
    ServerMessage and builders -- browser WebSocket frames
    ClientRequest -- browser pull requests
"""

from pvdbridge.domain.models import (
    ClientRequest,
    EventName,
    PvdRecord,
    RegistrySnapshot,
    ServerMessage,
    host_date_message,
    hostname_message,
    pvd_attributes_message,
    pvd_list_message,
)

__all__ = [
    "ClientRequest",
    "EventName",
    "PvdRecord",
    "RegistrySnapshot",
    "ServerMessage",
    "host_date_message",
    "hostname_message",
    "pvd_attributes_message",
    "pvd_list_message",
]
