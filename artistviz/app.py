from __future__ import annotations

import contextlib
from pathlib import Path

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import BaseRoute, Mount, Route
from starlette.staticfiles import StaticFiles

from auth.session_manager import SessionManager

from .constants import APP_VERSION
from .proxy import ProxyEndpoints


def health_route(session_manager: SessionManager) -> Route:
    async def health(request: Request) -> Response:
        del request
        return JSONResponse(
            {
                "status": "ok",
                "version": APP_VERSION,
                "session_store": type(session_manager.session_store).__name__,
            }
        )

    return Route("/health", health, methods=["GET"])


def build_app(
    *,
    session_manager: SessionManager,
    proxy: ProxyEndpoints,
    static_dir: str | Path | None = None,
    debug: bool = False,
) -> Starlette:
    routes: list[BaseRoute] = [
        *session_manager.routes(),
        *proxy.routes(),
        health_route(session_manager),
    ]
    if static_dir is not None:
        # Last so the API routes win over same-named files.
        routes.append(Mount("/", app=StaticFiles(directory=str(static_dir), html=True)))

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        del app
        try:
            yield
        finally:
            await proxy.spotify.aclose()

    return Starlette(debug=debug, routes=routes, lifespan=lifespan)
