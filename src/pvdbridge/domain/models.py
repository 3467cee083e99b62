"""Core domain models for pvdbridge.

These models represent the data flowing through the bridge: PvD records
held by the registry, the snapshot handed to client pull requests, and
the JSON frames pushed to browsers over WebSocket.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Registry Models
# ---------------------------------------------------------------------------


class PvdRecord(BaseModel):
    """A registered provisioning domain and its latest attributes."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="PvD identifier as announced by the daemon")
    attributes: Any = Field(
        default_factory=dict, description="Last attributes JSON value received for this PvD"
    )


class RegistrySnapshot(BaseModel):
    """Read-only view of the registry at one point in time."""

    model_config = ConfigDict(frozen=True)

    records: tuple[PvdRecord, ...] = ()
    current_list: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Event Names
# ---------------------------------------------------------------------------


class EventName(str, enum.Enum):
    """Event Bus channels, named after the browser frames they feed."""

    PVD_LIST = "pvdList"
    PVD_ATTRIBUTES = "pvdAttributes"
    HOST_DATE = "hostDate"


# ---------------------------------------------------------------------------
# Browser Wire Models
# ---------------------------------------------------------------------------


class _WirePayload(BaseModel):
    """Payloads are serialized with camelCase keys."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class HostnamePayload(_WirePayload):
    hostname: str


class PvdListPayload(_WirePayload):
    pvd_list: list[str]


class PvdAttributesPayload(_WirePayload):
    pvd: str
    pvd_attributes: Any


class HostDatePayload(_WirePayload):
    host_date: str


class ServerMessage(BaseModel):
    """A JSON frame pushed to a browser: ``{"what": ..., "payload": {...}}``."""

    model_config = ConfigDict(frozen=True)

    what: Literal["hostname", "pvdList", "pvdAttributes", "hostDate"]
    payload: Union[HostnamePayload, PvdListPayload, PvdAttributesPayload, HostDatePayload]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def hostname_message(hostname: str) -> ServerMessage:
    return ServerMessage(what="hostname", payload=HostnamePayload(hostname=hostname))


def pvd_list_message(pvd_list: list[str] | tuple[str, ...]) -> ServerMessage:
    return ServerMessage(what="pvdList", payload=PvdListPayload(pvd_list=list(pvd_list)))


def pvd_attributes_message(record: PvdRecord) -> ServerMessage:
    return ServerMessage(
        what="pvdAttributes",
        payload=PvdAttributesPayload(pvd=record.id, pvd_attributes=record.attributes),
    )


def host_date_message(host_date: str) -> ServerMessage:
    return ServerMessage(what="hostDate", payload=HostDatePayload(host_date=host_date))


class ClientRequest(str, enum.Enum):
    """Plain-text pull requests a browser may send."""

    GET_LIST = "PVD_GET_LIST"
    GET_ATTRIBUTES = "PVD_GET_ATTRIBUTES"

    @classmethod
    def parse(cls, text: str) -> ClientRequest | None:
        """Map a client text frame to a request, or None when unrecognized.

        Older client pages spell the requests with a PVDID_ prefix; both
        spellings are accepted.
        """
        text = text.strip()
        if text.startswith("PVDID_"):
            text = "PVD_" + text[len("PVDID_"):]
        try:
            return cls(text)
        except ValueError:
            return None
