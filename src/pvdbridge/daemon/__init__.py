"""pvdd daemon connection management.

Public API:
    DaemonConnection -- reconnecting TCP session with pvdd
    RetryPolicy -- fixed-interval reconnection policy
    ConnectionState -- connection state machine states
"""

from pvdbridge.daemon.connection import ConnectionState, DaemonConnection, RetryPolicy

__all__ = ["ConnectionState", "DaemonConnection", "RetryPolicy"]
