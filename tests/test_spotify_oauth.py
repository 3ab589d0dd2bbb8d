import base64
import time
import urllib.parse

import httpx
import pytest

from auth.spotify_oauth import (
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_TOKEN_URL,
    TokenResponse,
    build_authorization_url,
    exchange_code,
    refresh_token,
)


def _form(request: httpx.Request) -> dict[str, list[str]]:
    return urllib.parse.parse_qs(request.content.decode("utf-8"))


def test_build_authorization_url_contains_required_params() -> None:
    url = build_authorization_url(
        client_id="client123",
        redirect_uri="https://example.com/callback",
        scopes=["user-top-read"],
        state="state123",
    )

    parsed = urllib.parse.urlparse(url)
    query = urllib.parse.parse_qs(parsed.query)

    assert url.startswith(SPOTIFY_AUTHORIZE_URL)
    assert query["client_id"] == ["client123"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["https://example.com/callback"]
    assert query["scope"] == ["user-top-read"]
    assert query["state"] == ["state123"]
    assert query["show_dialog"] == ["true"]


def test_build_authorization_url_without_forced_dialog() -> None:
    url = build_authorization_url(
        client_id="client123",
        redirect_uri="https://example.com/callback",
        scopes=["user-top-read", "user-read-email"],
        state="state123",
        show_dialog=False,
    )

    query = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
    assert query["show_dialog"] == ["false"]
    assert query["scope"] == ["user-top-read user-read-email"]


@pytest.mark.asyncio
async def test_exchange_code_success(httpx_mock) -> None:
    httpx_mock.add_response(
        url=SPOTIFY_TOKEN_URL,
        method="POST",
        json={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
            "scope": "user-top-read",
        },
    )

    token = await exchange_code(
        client_id="id",
        client_secret="secret",
        code="code123",
        redirect_uri="https://example.com/callback",
    )

    assert token.access_token == "access-1"
    assert token.refresh_token == "refresh-1"
    assert token.expires_in == 3600
    assert token.scope == "user-top-read"
    assert token.expires_at > time.time()


@pytest.mark.asyncio
async def test_exchange_code_uses_basic_client_auth(httpx_mock) -> None:
    httpx_mock.add_response(
        url=SPOTIFY_TOKEN_URL,
        method="POST",
        json={"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3600},
    )

    await exchange_code(
        client_id="id",
        client_secret="secret",
        code="code123",
        redirect_uri="https://example.com/callback",
    )

    request = httpx_mock.get_request()
    expected = base64.b64encode(b"id:secret").decode("ascii")
    assert request.headers["authorization"] == f"Basic {expected}"
    form = _form(request)
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["code123"]
    assert form["redirect_uri"] == ["https://example.com/callback"]
    assert "client_secret" not in form


@pytest.mark.asyncio
async def test_exchange_code_error(httpx_mock) -> None:
    httpx_mock.add_response(
        url=SPOTIFY_TOKEN_URL, method="POST", status_code=400, text="invalid_grant"
    )

    with pytest.raises(RuntimeError, match="Token request failed with status 400"):
        await exchange_code(
            client_id="id",
            client_secret="secret",
            code="bad-code",
            redirect_uri="https://example.com/callback",
        )


@pytest.mark.asyncio
async def test_exchange_code_network_error(httpx_mock) -> None:
    httpx_mock.add_exception(httpx.ConnectTimeout("timed out"), url=SPOTIFY_TOKEN_URL)

    with pytest.raises(RuntimeError, match="Token request failed"):
        await exchange_code(
            client_id="id",
            client_secret="secret",
            code="code123",
            redirect_uri="https://example.com/callback",
        )


@pytest.mark.asyncio
async def test_refresh_token_success_without_rotation(httpx_mock) -> None:
    httpx_mock.add_response(
        url=SPOTIFY_TOKEN_URL,
        method="POST",
        json={"access_token": "access-2", "expires_in": 3600, "scope": "user-top-read"},
    )

    token = await refresh_token(
        client_id="id",
        client_secret="secret",
        refresh_token="refresh-1",
    )

    assert token.access_token == "access-2"
    assert token.refresh_token is None
    form = _form(httpx_mock.get_request())
    assert form["grant_type"] == ["refresh_token"]
    assert form["refresh_token"] == ["refresh-1"]


@pytest.mark.asyncio
async def test_refresh_token_error(httpx_mock) -> None:
    httpx_mock.add_response(url=SPOTIFY_TOKEN_URL, method="POST", status_code=400, text="bad")

    with pytest.raises(RuntimeError, match="Token request failed"):
        await refresh_token(
            client_id="id",
            client_secret="secret",
            refresh_token="revoked",
        )


def test_token_response_requires_access_token() -> None:
    with pytest.raises(RuntimeError, match="missing access_token"):
        TokenResponse.from_payload({"refresh_token": "r", "expires_in": 3600})


def test_token_response_defaults_expiry() -> None:
    token = TokenResponse.from_payload({"access_token": "a"})

    assert token.expires_in == 3600
    assert token.refresh_token is None
    assert token.scope == ""


def test_is_expired_true() -> None:
    token = TokenResponse(
        access_token="a",
        refresh_token="r",
        expires_in=10,
        expires_at=time.time() - 1,
        scope="user-top-read",
    )

    assert token.is_expired() is True


def test_is_expired_false() -> None:
    token = TokenResponse(
        access_token="a",
        refresh_token=None,
        expires_in=10,
        expires_at=time.time() + 3600,
        scope="user-top-read",
    )

    assert token.is_expired() is False
