from __future__ import annotations

import urllib.parse

import httpx

from .constants import PREVIEW_MARKET, TOP_ARTISTS_LIMIT
from .http import FetchFailedError


def select_preview_url(tracks: list[dict]) -> str | None:
    """Preview of the first track that has one, else the first track's (null) preview."""
    for track in tracks:
        if isinstance(track, dict) and track.get("preview_url"):
            return track["preview_url"]
    if tracks and isinstance(tracks[0], dict):
        return tracks[0].get("preview_url")
    return None


class SpotifyClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def top_artists(self, access_token: str, time_range: str) -> dict:
        return await self._get_json(
            "/me/top/artists",
            access_token,
            params={"limit": TOP_ARTISTS_LIMIT, "time_range": time_range},
        )

    async def artist_top_tracks(self, access_token: str, artist_id: str) -> list[dict]:
        payload = await self._get_json(
            f"/artists/{urllib.parse.quote(artist_id, safe='')}/top-tracks",
            access_token,
            params={"market": PREVIEW_MARKET},
        )
        tracks = payload.get("tracks", [])
        if not isinstance(tracks, list):
            raise FetchFailedError("Spotify top-tracks response has no track list.")
        return tracks

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, access_token: str, *, params: dict) -> dict:
        response = await self._client.get(
            path,
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as error:
            raise FetchFailedError("Spotify API returned invalid JSON.") from error
        if not isinstance(payload, dict):
            raise FetchFailedError("Spotify API returned an unexpected payload.")
        return payload
