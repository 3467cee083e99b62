"""Command-line interface for pvdbridge.

Loads the configuration, applies command-line overrides, sets up
logging and runs the HTTP/WebSocket server, which in turn keeps the
pvdd connection alive.
"""

from __future__ import annotations

import argparse
import logging
import socket
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pvdbridge",
        description="Bridge the pvdd PvD daemon to web browsers over WebSocket",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/pvdbridge.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Output extra logs during operation",
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="HTTP port to listen on (default 8080)",
    )
    parser.add_argument(
        "--static-file",
        type=Path,
        default=None,
        help="HTML page served to browsers (default: bundled pvdClient.html)",
    )
    parser.add_argument(
        "--daemon-host",
        type=str,
        default=None,
        help="Host running pvdd (default 127.0.0.1; port comes from PVDID_PORT)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the pvdbridge CLI."""
    args = parse_args(argv)

    from pvdbridge.config.settings import load_settings
    from pvdbridge.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"
    if args.port is not None:
        settings.http.port = args.port
    if args.static_file is not None:
        settings.http.static_file = args.static_file
    if args.daemon_host is not None:
        settings.daemon.host = args.daemon_host

    setup_logging(settings.logging)

    logger.info(
        "Listening on http port %d, pvdd port %d", settings.http.port, settings.daemon.port
    )
    logger.info("Hostname : %s", socket.gethostname())

    from pvdbridge.web.server import main as serve

    serve(settings)


if __name__ == "__main__":
    main()
