from __future__ import annotations

import os
from pathlib import Path

import uvicorn
from starlette.applications import Starlette

from artistviz.app import build_app
from artistviz.constants import APP_VERSION, LOGGER, SPOTIFY_API_BASE_URL
from artistviz.env import (
    get_env_float,
    get_env_int,
    is_truthy,
    load_env,
    setup_logging,
    validate_env,
)
from artistviz.http import build_http_client
from artistviz.proxy import ProxyEndpoints
from artistviz.spotify_api import SpotifyClient
from auth.session_manager import (
    DEFAULT_COOKIE_NAME,
    DEFAULT_SESSION_TTL_SECONDS,
    SessionManager,
)
from auth.session_store import MemorySessionStore
from auth.spotify_oauth import DEFAULT_TIMEOUT


def resolve_static_dir() -> Path | None:
    raw = os.getenv("STATIC_DIR", "").strip()
    if not raw:
        return None
    static_dir = Path(raw)
    if not static_dir.is_dir():
        LOGGER.warning("STATIC_DIR %s is not a directory; static files disabled", static_dir)
        return None
    return static_dir


def create_app() -> Starlette:
    load_env()
    debug_enabled = setup_logging()
    validate_env()

    timeout = get_env_float("SPOTIFY_TIMEOUT", DEFAULT_TIMEOUT)
    session_store = MemorySessionStore()

    session_manager = SessionManager(
        client_id=os.getenv("SPOTIFY_CLIENT_ID", "").strip(),
        client_secret=os.getenv("SPOTIFY_CLIENT_SECRET", "").strip(),
        redirect_uri=os.getenv("SPOTIFY_REDIRECT_URI", "").strip(),
        session_store=session_store,
        session_secret=os.getenv("SESSION_SECRET", "").strip() or None,
        session_ttl_seconds=get_env_int("SESSION_TTL_SECONDS", DEFAULT_SESSION_TTL_SECONDS),
        cookie_name=os.getenv("SESSION_COOKIE_NAME", DEFAULT_COOKIE_NAME),
        cookie_secure=is_truthy(os.getenv("SESSION_COOKIE_SECURE")),
        error_path=os.getenv("ERROR_REDIRECT_PATH", "/error.html").strip() or "/error.html",
        timeout=timeout,
    )

    client = build_http_client(
        base_url=os.getenv("SPOTIFY_API_BASE_URL", "").strip() or SPOTIFY_API_BASE_URL,
        timeout=timeout,
        debug_enabled=debug_enabled,
    )
    proxy = ProxyEndpoints(session_manager=session_manager, spotify=SpotifyClient(client))

    LOGGER.info("artistviz %s using %s", APP_VERSION, type(session_store).__name__)
    return build_app(
        session_manager=session_manager,
        proxy=proxy,
        static_dir=resolve_static_dir(),
    )


def main() -> None:
    host = os.getenv("APP_HOST", "127.0.0.1")
    port = int(os.getenv("APP_PORT", "3000"))
    app = create_app()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
