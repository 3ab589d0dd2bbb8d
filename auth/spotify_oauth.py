from __future__ import annotations

import time
import urllib.parse
from dataclasses import dataclass

import httpx

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

DEFAULT_SCOPES = ["user-top-read"]
DEFAULT_TIMEOUT = 10.0
DEFAULT_EXPIRES_IN = 3600


@dataclass
class TokenResponse:
    access_token: str
    refresh_token: str | None
    expires_in: int
    expires_at: float
    scope: str

    def is_expired(self) -> bool:
        return time.time() >= self.expires_at

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenResponse":
        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        expires_in = payload.get("expires_in", DEFAULT_EXPIRES_IN)
        scope = payload.get("scope", "")

        if not isinstance(access_token, str) or not access_token:
            raise RuntimeError("Token response missing access_token.")
        # Spotify omits refresh_token from refresh responses unless it rotates it.
        if refresh_token is not None and (not isinstance(refresh_token, str) or not refresh_token):
            raise RuntimeError("Token response refresh_token must be a non-empty string.")
        if not isinstance(expires_in, int):
            raise RuntimeError("Token response expires_in must be an integer.")
        if not isinstance(scope, str):
            raise RuntimeError("Token response scope must be a string.")

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            expires_at=time.time() + expires_in,
            scope=scope,
        )


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: list[str],
    state: str,
    *,
    show_dialog: bool = True,
) -> str:
    query = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
        "show_dialog": "true" if show_dialog else "false",
    }
    return f"{SPOTIFY_AUTHORIZE_URL}?{urllib.parse.urlencode(query)}"


async def _token_request(
    payload: dict[str, str],
    client_id: str,
    client_secret: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> TokenResponse:
    own_client = client is None
    http_client = client or httpx.AsyncClient(timeout=timeout)

    try:
        response = await http_client.post(
            SPOTIFY_TOKEN_URL,
            data=payload,
            auth=(client_id, client_secret),
        )
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPStatusError as error:
        detail = error.response.text
        raise RuntimeError(
            f"Token request failed with status {error.response.status_code}: {detail}"
        ) from error
    except httpx.TransportError as error:
        raise RuntimeError(f"Token request failed: {error!r}") from error
    except ValueError as error:
        raise RuntimeError("Token response is not valid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    if not isinstance(body, dict):
        raise RuntimeError("Token response must be a JSON object.")
    return TokenResponse.from_payload(body)


async def exchange_code(
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> TokenResponse:
    return await _token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        },
        client_id,
        client_secret,
        client=client,
        timeout=timeout,
    )


async def refresh_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> TokenResponse:
    return await _token_request(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        },
        client_id,
        client_secret,
        client=client,
        timeout=timeout,
    )
