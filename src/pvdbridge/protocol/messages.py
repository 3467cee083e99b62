"""Parsing of pvdd protocol lines into tagged messages.

Matching is kept apart from handling: ``parse_line`` and
``parse_multiline`` only classify text, and the state machine decides
what each message does to the registry.

Inbound single-line messages (case-insensitive)::

    PVDID_LIST <id> <id> ...
    PVDID_NEW_PVDID <id>
    PVDID_DEL_PVDID <id>
    PVDID_ATTRIBUTES <id> <json>

Multi-line body (between the begin/end markers)::

    PVDID_ATTRIBUTES <id>
    <json spanning the remaining lines>
"""

from __future__ import annotations

import json
import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from pvdbridge.exceptions import ProtocolError

BEGIN_MULTILINE = "PVDID_BEGIN_MULTILINE"
END_MULTILINE = "PVDID_END_MULTILINE"

# Outbound commands
GET_LIST = "PVDID_GET_LIST"
SUBSCRIBE_NOTIFICATIONS = "PVDID_SUBSCRIBE_NOTIFICATIONS"
SUBSCRIBE_ALL_ATTRIBUTES = "PVDID_SUBSCRIBE *"
HANDSHAKE = (GET_LIST, SUBSCRIBE_NOTIFICATIONS, SUBSCRIBE_ALL_ATTRIBUTES)


def get_attributes_command(pvd_id: str) -> str:
    return f"PVDID_GET_ATTRIBUTES {pvd_id}"


_LIST_RE = re.compile(r"^PVDID_LIST(?:\s+(.*))?$", re.IGNORECASE)
_NEW_RE = re.compile(r"^PVDID_NEW_PVDID\b", re.IGNORECASE)
_DEL_RE = re.compile(r"^PVDID_DEL_PVDID\s+(\S+)", re.IGNORECASE)
_ATTRIBUTES_RE = re.compile(r"^PVDID_ATTRIBUTES\s+(\S+)\s+(.+)$", re.IGNORECASE)
_MULTILINE_ATTRIBUTES_RE = re.compile(
    r"^PVDID_ATTRIBUTES[ \t]+(\S+)[ \t]*\n(.+)$", re.IGNORECASE | re.DOTALL
)


# ---------------------------------------------------------------------------
# Message variants (discriminated union)
# ---------------------------------------------------------------------------


class ListMessage(BaseModel):
    """Full, authoritative list of PvD ids currently known to the daemon."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["list"] = "list"
    pvd_ids: tuple[str, ...] = ()


class NewPvdMessage(BaseModel):
    """Announcement of a new PvD. The list message is used instead."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["new"] = "new"
    line: str


class DeleteMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["delete"] = "delete"
    pvd_id: str


class AttributesMessage(BaseModel):
    """Attributes of one PvD, already decoded from JSON."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["attributes"] = "attributes"
    pvd_id: str
    attributes: Any


class MalformedMessage(BaseModel):
    """A recognized command whose payload could not be decoded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["malformed"] = "malformed"
    line: str
    reason: str


class UnknownMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"
    line: str


DaemonMessage = Annotated[
    Union[
        ListMessage,
        NewPvdMessage,
        DeleteMessage,
        AttributesMessage,
        MalformedMessage,
        UnknownMessage,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def decode_attributes(blob: str, line: str = "") -> Any:
    """Decode an attributes JSON payload.

    Raises:
        ProtocolError: If ``blob`` is not valid JSON.
    """
    try:
        return json.loads(blob)
    except (ValueError, RecursionError) as e:
        raise ProtocolError(f"invalid JSON ({e})", line=line or blob) from e


def _attributes(pvd_id: str, blob: str, line: str) -> AttributesMessage | MalformedMessage:
    try:
        attributes = decode_attributes(blob, line)
    except ProtocolError as e:
        return MalformedMessage(line=e.line, reason=str(e))
    return AttributesMessage(pvd_id=pvd_id, attributes=attributes)


def parse_line(line: str) -> DaemonMessage:
    """Classify one single-line daemon message. First match wins."""
    text = line.strip()

    m = _LIST_RE.match(text)
    if m is not None:
        return ListMessage(pvd_ids=tuple((m.group(1) or "").split()))

    if _NEW_RE.match(text) is not None:
        return NewPvdMessage(line=line)

    m = _DEL_RE.match(text)
    if m is not None:
        return DeleteMessage(pvd_id=m.group(1))

    m = _ATTRIBUTES_RE.match(text)
    if m is not None:
        return _attributes(m.group(1), m.group(2), line)

    return UnknownMessage(line=line)


def parse_multiline(body: str) -> DaemonMessage:
    """Classify the accumulated body of a multi-line message."""
    m = _MULTILINE_ATTRIBUTES_RE.match(body.lstrip())
    if m is not None:
        return _attributes(m.group(1), m.group(2), body)
    return UnknownMessage(line=body)
