"""HTTP/WebSocket front door for pvdbridge.

Serves the static client page over HTTP and streams PvD notifications
to browsers over WebSocket.
"""
