"""FastAPI front door for browsers.

Serves the static client page on every GET path and accepts WebSocket
upgrades on every path, handing each one to a ClientSession. The
application lifespan starts and stops the bridge (daemon connection and
host clock).

    GET  /<any>   -> static HTML page
    WS   /<any>   -> live PvD notifications
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.responses import Response

from pvdbridge import __version__
from pvdbridge.bridge import PvdBridge
from pvdbridge.config.settings import Settings, load_settings
from pvdbridge.web.fanout import ClientSession

logger = logging.getLogger(__name__)

DEFAULT_STATIC_FILE = Path(__file__).parent / "static" / "pvdClient.html"


def create_app(
    bridge: PvdBridge | None = None,
    settings: Settings | None = None,
    static_file: Path | str | None = None,
) -> FastAPI:
    """Create the bridge web application.

    Args:
        bridge: Optional pre-built bridge (for testing).
        settings: Settings used to build the bridge when none is given.
        static_file: Page served on GET. Defaults to ``settings.http.static_file``
                     and then to the packaged pvdClient.html.
    """
    settings = settings or (bridge.settings if bridge is not None else load_settings())
    page = Path(static_file or settings.http.static_file or DEFAULT_STATIC_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        b: PvdBridge = app.state.bridge
        await b.start()
        logger.info("Bridge started (pvdd %s:%d)", *b.connection.address)
        yield
        await b.stop()
        logger.info("Bridge stopped")

    app = FastAPI(
        title="pvdbridge",
        description="Live PvD notifications from pvdd over WebSocket",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bridge = bridge or PvdBridge(settings)
    app.state.static_file = page

    @app.get("/{path:path}")
    async def static_page(path: str) -> Response:
        static: Path = app.state.static_file
        try:
            content = static.read_bytes()
        except OSError as e:
            logger.warning("Can not read static page %s (%s)", static, e)
            raise HTTPException(status_code=404, detail="Page not found") from e
        return Response(content=content, status_code=200, media_type="text/html")

    @app.websocket("/{path:path}")
    async def websocket_endpoint(websocket: WebSocket, path: str) -> None:
        await ClientSession(websocket, app.state.bridge).run()

    return app


def main(settings: Settings | None = None) -> None:
    """Run the bridge web server."""
    settings = settings or load_settings()
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.http.host, port=settings.http.port)


if __name__ == "__main__":
    main()
