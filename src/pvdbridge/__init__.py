"""pvdbridge -- provisioning-domain daemon to WebSocket bridge.

Keeps a live, in-memory view of the PvDs announced by a local pvdd
daemon over its line-oriented TCP protocol and republishes every change
to connected browsers over WebSocket, next to a static HTML page served
over HTTP.
"""

__version__ = "0.1.0"
