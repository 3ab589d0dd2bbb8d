from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from auth.errors import AuthError
from auth.session_manager import SessionManager

from .constants import DEFAULT_TIME_RANGE, TIME_RANGES
from .http import ProxyError, call_with_token_refresh
from .spotify_api import SpotifyClient, select_preview_url


class ProxyEndpoints:
    def __init__(self, *, session_manager: SessionManager, spotify: SpotifyClient) -> None:
        self.session_manager = session_manager
        self.spotify = spotify

    async def list_top_artists(
        self, session_id: str | None, time_range: str = DEFAULT_TIME_RANGE
    ) -> dict:
        async def fetch(access_token: str) -> dict:
            return await self.spotify.top_artists(access_token, time_range)

        return await call_with_token_refresh(self.session_manager, session_id, fetch)

    async def get_artist_preview(self, session_id: str | None, artist_id: str) -> dict:
        async def fetch(access_token: str) -> list[dict]:
            return await self.spotify.artist_top_tracks(access_token, artist_id)

        tracks = await call_with_token_refresh(self.session_manager, session_id, fetch)
        return {"preview_url": select_preview_url(tracks)}

    def routes(self) -> list[Route]:
        return [
            Route("/top-artists", self._handle_top_artists, methods=["GET"]),
            Route("/artist-preview/{artist_id}", self._handle_artist_preview, methods=["GET"]),
        ]

    async def _handle_top_artists(self, request: Request) -> Response:
        time_range = request.query_params.get("time_range") or DEFAULT_TIME_RANGE
        if time_range not in TIME_RANGES:
            return self._error(
                "invalid_request",
                f"time_range must be one of: {', '.join(TIME_RANGES)}.",
                400,
            )

        session_id = self.session_manager.session_id_from_request(request)
        try:
            payload = await self.list_top_artists(session_id, time_range)
        except (AuthError, ProxyError) as error:
            return self._error(error.code, str(error), error.status_code)
        return JSONResponse(payload)

    async def _handle_artist_preview(self, request: Request) -> Response:
        session_id = self.session_manager.session_id_from_request(request)
        try:
            payload = await self.get_artist_preview(session_id, request.path_params["artist_id"])
        except (AuthError, ProxyError) as error:
            return self._error(error.code, str(error), error.status_code)
        return JSONResponse(payload)

    def _error(self, code: str, description: str, status_code: int) -> Response:
        return JSONResponse(
            {"error": code, "error_description": description},
            status_code=status_code,
        )
