"""Exception hierarchy for pvdbridge."""

from __future__ import annotations


class PvdBridgeError(Exception):
    """Base class for bridge errors."""


class DaemonConnectionError(PvdBridgeError):
    """Raised when the pvdd daemon cannot be reached or the link drops."""

    def __init__(self, message: str, host: str = "", port: int = 0) -> None:
        super().__init__(message)
        self.host = host
        self.port = port


class ProtocolError(PvdBridgeError):
    """Raised when a daemon message carries an unusable payload."""

    def __init__(self, message: str, line: str = "") -> None:
        super().__init__(message)
        self.line = line
