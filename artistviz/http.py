from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from auth.errors import NoRefreshTokenError, RefreshFailedError

from .constants import LOGGER

T = TypeVar("T")

MAX_LOGGED_BODY = 1000


class ProxyError(RuntimeError):
    code = "proxy_error"
    status_code = 502
    default_message = "Spotify request failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class SessionExpiredError(ProxyError):
    code = "session_expired"
    status_code = 401
    default_message = "Spotify session expired. Please log in again."


class FetchFailedError(ProxyError):
    code = "fetch_failed"
    status_code = 502


def friendly_error_message(status_code: int) -> str:
    if status_code == 401:
        return "Authentication failed. Your Spotify token may have expired."
    if status_code == 403:
        return "Spotify refused access to this resource."
    if status_code == 404:
        return "The requested resource was not found on Spotify."
    if status_code == 429:
        return "Spotify rate limit exceeded. Please try again later."
    if status_code >= 500:
        return "Spotify API is experiencing issues. Please try again later."
    return f"Spotify API request failed with status {status_code}."


def _fetch_failed(error: httpx.HTTPError) -> FetchFailedError:
    if isinstance(error, httpx.HTTPStatusError):
        return FetchFailedError(friendly_error_message(error.response.status_code))
    if isinstance(error, httpx.TimeoutException):
        return FetchFailedError("Spotify API request timed out.")
    return FetchFailedError(f"Could not reach Spotify API: {error!r}")


def _is_unauthorized(error: httpx.HTTPError) -> bool:
    return isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 401


async def call_with_token_refresh(
    session_manager,
    session_id: str | None,
    call: Callable[[str], Awaitable[T]],
) -> T:
    """Run ``call`` with the session's access token, refreshing once on a 401.

    Raises ``NotAuthenticatedError`` when the session has no token,
    ``SessionExpiredError`` when the refresh or the retry is rejected, and
    ``FetchFailedError`` for every other upstream failure.
    """
    access_token = await session_manager.get_valid_access_token(session_id)
    try:
        return await call(access_token)
    except httpx.HTTPError as error:
        if not _is_unauthorized(error):
            raise _fetch_failed(error) from error
        LOGGER.info("Spotify rejected the access token; refreshing once")

    try:
        access_token = await session_manager.refresh(
            session_id, stale_access_token=access_token
        )
    except (NoRefreshTokenError, RefreshFailedError) as error:
        LOGGER.warning("Token refresh failed (%s); ending session", error.code)
        await session_manager.logout(session_id)
        raise SessionExpiredError() from error

    try:
        return await call(access_token)
    except httpx.HTTPError as error:
        if _is_unauthorized(error):
            LOGGER.warning("Spotify rejected the refreshed token; ending session")
            await session_manager.logout(session_id)
            raise SessionExpiredError() from error
        raise _fetch_failed(error) from error


def build_http_client(
    *,
    base_url: str,
    timeout: float,
    debug_enabled: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
    logger: logging.Logger | None = None,
) -> httpx.AsyncClient:
    log = logger or LOGGER

    async def log_request(request: httpx.Request) -> None:
        if not debug_enabled:
            return
        log.info("Spotify API request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        if not debug_enabled:
            return
        log.info(
            "Spotify API response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        if response.status_code >= 400:
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > MAX_LOGGED_BODY:
                text = text[:MAX_LOGGED_BODY] + "...<truncated>"
            log.warning("Spotify API error body: %s", text)

    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        transport=transport,
        event_hooks={
            "request": [log_request],
            "response": [log_response],
        },
    )
