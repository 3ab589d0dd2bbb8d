from __future__ import annotations

import asyncio
import logging
import secrets
import time

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.routing import Route

from auth import signed_token, spotify_oauth
from auth.errors import (
    AuthError,
    NoRefreshTokenError,
    NotAuthenticatedError,
    RefreshFailedError,
    StateMismatchError,
    TokenExchangeError,
)
from auth.models import ANONYMOUS, Authenticated, AuthState, PendingLogin, SessionRecord
from auth.session_store import SessionStore
from auth.urls import append_query_params

LOGGER = logging.getLogger("artistviz.auth")

DEFAULT_COOKIE_NAME = "artistviz_session"
DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionManager:
    """Spotify login state machine bound to a server-issued session cookie.

    A session moves ``Anonymous -> PendingLogin -> Authenticated`` through
    ``/login`` and ``/callback`` and back to ``Anonymous`` on logout, when a
    refresh fails, or once the record outlives ``session_ttl_seconds``.
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        session_store: SessionStore,
        session_secret: str | None = None,
        scopes: list[str] | None = None,
        session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        cookie_secure: bool = False,
        error_path: str = "/error.html",
        timeout: float = spotify_oauth.DEFAULT_TIMEOUT,
        exchange_code_fn=spotify_oauth.exchange_code,
        refresh_token_fn=spotify_oauth.refresh_token,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.session_store = session_store
        self.scopes = scopes or list(spotify_oauth.DEFAULT_SCOPES)
        self.session_ttl_seconds = session_ttl_seconds
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure
        self.error_path = error_path
        self.timeout = timeout

        self._cookie_key = signed_token.derive_key(session_secret or client_secret)
        self._exchange_code_fn = exchange_code_fn
        self._refresh_token_fn = refresh_token_fn
        self._refresh_locks: dict[str, asyncio.Lock] = {}

    # -- session cookie helpers ------------------------------------------------

    def encode_cookie(self, session_id: str) -> str:
        return signed_token.encode({"sid": session_id}, self._cookie_key)

    def session_id_from_cookie(self, value: str | None) -> str | None:
        if not value:
            return None
        try:
            payload = signed_token.decode(value, self._cookie_key)
        except (RuntimeError, ValueError):
            return None
        session_id = payload.get("sid")
        return session_id if isinstance(session_id, str) and session_id else None

    def session_id_from_request(self, request: Request) -> str | None:
        return self.session_id_from_cookie(request.cookies.get(self.cookie_name))

    # -- state machine ---------------------------------------------------------

    async def auth_state(self, session_id: str | None) -> AuthState:
        record = await self._load(session_id)
        return ANONYMOUS if record is None else record.auth

    async def begin_login(self, session_id: str) -> str:
        await self._cleanup_expired_sessions()

        state = secrets.token_urlsafe(24)
        await self.session_store.set(
            session_id,
            SessionRecord(auth=PendingLogin(state=state), created_at=time.time()),
        )
        return spotify_oauth.build_authorization_url(
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            scopes=self.scopes,
            state=state,
            show_dialog=True,
        )

    async def complete_login(self, session_id: str | None, code: str, state: str) -> None:
        record = await self._pending_login(session_id, state)

        try:
            exchanged = await self._exchange_code_fn(
                client_id=self.client_id,
                client_secret=self.client_secret,
                code=code,
                redirect_uri=self.redirect_uri,
                timeout=self.timeout,
            )
        except RuntimeError as error:
            await self.logout(session_id)
            raise TokenExchangeError(
                f"Failed to exchange Spotify authorization code: {error}"
            ) from error

        record.auth = Authenticated(
            access_token=exchanged.access_token,
            refresh_token=exchanged.refresh_token,
            expires_at=exchanged.expires_at,
        )
        await self.session_store.set(session_id, record)

    async def cancel_login(self, session_id: str | None, state: str) -> None:
        """Drop a pending login the user declined; ``state`` must match it."""
        await self._pending_login(session_id, state)
        await self.logout(session_id)

    async def logout(self, session_id: str | None) -> None:
        if not session_id:
            return
        await self.session_store.delete(session_id)
        self._refresh_locks.pop(session_id, None)

    async def get_valid_access_token(self, session_id: str | None) -> str:
        auth = await self.auth_state(session_id)
        if not isinstance(auth, Authenticated):
            raise NotAuthenticatedError()
        return auth.access_token

    async def refresh(
        self, session_id: str | None, *, stale_access_token: str | None = None
    ) -> str:
        if not session_id:
            raise NoRefreshTokenError()

        async with self._refresh_lock(session_id):
            record = await self._load(session_id)
            if record is None or not isinstance(record.auth, Authenticated):
                raise NoRefreshTokenError()

            current = record.auth
            if stale_access_token is not None and current.access_token != stale_access_token:
                # A concurrent request already refreshed this session.
                return current.access_token
            if not current.refresh_token:
                raise NoRefreshTokenError()

            try:
                refreshed = await self._refresh_token_fn(
                    client_id=self.client_id,
                    client_secret=self.client_secret,
                    refresh_token=current.refresh_token,
                    timeout=self.timeout,
                )
            except RuntimeError as error:
                raise RefreshFailedError(
                    f"Spotify refresh token expired or revoked: {error}"
                ) from error

            record.auth = Authenticated(
                access_token=refreshed.access_token,
                refresh_token=refreshed.refresh_token or current.refresh_token,
                expires_at=refreshed.expires_at,
            )
            await self.session_store.set(session_id, record)
            LOGGER.info("Refreshed Spotify access token")
            return refreshed.access_token

    # -- routes ----------------------------------------------------------------

    def routes(self) -> list[Route]:
        return [
            Route("/login", self._handle_login, methods=["GET"]),
            Route("/callback", self._handle_callback, methods=["GET"]),
            Route("/logout", self._handle_logout, methods=["GET"]),
        ]

    # -- handlers --------------------------------------------------------------

    async def _handle_login(self, request: Request) -> Response:
        # Every login gets a fresh id so a planted cookie never receives tokens.
        previous = self.session_id_from_request(request)
        if previous:
            await self.logout(previous)
        session_id = new_session_id()
        authorize_url = await self.begin_login(session_id)

        response = RedirectResponse(url=authorize_url, status_code=302)
        self._set_session_cookie(response, session_id)
        return response

    async def _handle_callback(self, request: Request) -> Response:
        session_id = self.session_id_from_request(request)

        if request.query_params.get("error"):
            LOGGER.warning(
                "Spotify authorization returned an error: %s",
                request.query_params.get("error"),
            )
            try:
                await self.cancel_login(session_id, request.query_params.get("state", ""))
            except AuthError as error:
                return self._error_redirect(error.code)
            return self._error_redirect("access_denied")

        code = request.query_params.get("code")
        if not code:
            return self._error_redirect("invalid_request")

        try:
            await self.complete_login(session_id, code, request.query_params.get("state", ""))
        except AuthError as error:
            LOGGER.warning("Spotify callback rejected (%s): %s", error.code, error)
            return self._error_redirect(error.code)

        LOGGER.info("Spotify login completed")
        return RedirectResponse(url="/", status_code=302)

    async def _handle_logout(self, request: Request) -> Response:
        await self.logout(self.session_id_from_request(request))

        response = RedirectResponse(url="/", status_code=302)
        response.delete_cookie(
            self.cookie_name,
            secure=self.cookie_secure,
            httponly=True,
            samesite="lax",
        )
        return response

    # -- helpers ---------------------------------------------------------------

    async def _load(self, session_id: str | None) -> SessionRecord | None:
        if not session_id:
            return None
        record = await self.session_store.get(session_id)
        if record is None:
            self._refresh_locks.pop(session_id, None)
            return None
        if record.is_expired(self.session_ttl_seconds):
            await self.logout(session_id)
            return None
        return record

    async def _pending_login(self, session_id: str | None, state: str) -> SessionRecord:
        record = await self._load(session_id)
        if record is None or not isinstance(record.auth, PendingLogin):
            raise StateMismatchError("No login is pending for this session.")
        if not state or not secrets.compare_digest(
            record.auth.state.encode("utf-8"), state.encode("utf-8")
        ):
            raise StateMismatchError()
        return record

    async def _cleanup_expired_sessions(self) -> None:
        cutoff = time.time() - self.session_ttl_seconds
        removed = await self.session_store.purge_created_before(cutoff)
        for session_id in removed:
            self._refresh_locks.pop(session_id, None)
        if removed:
            LOGGER.info("Purged %s expired sessions", len(removed))

    def _refresh_lock(self, session_id: str) -> asyncio.Lock:
        lock = self._refresh_locks.get(session_id)
        if lock is None:
            lock = self._refresh_locks[session_id] = asyncio.Lock()
        return lock

    def _set_session_cookie(self, response: Response, session_id: str) -> None:
        response.set_cookie(
            self.cookie_name,
            self.encode_cookie(session_id),
            max_age=self.session_ttl_seconds,
            httponly=True,
            secure=self.cookie_secure,
            samesite="lax",
        )

    def _error_redirect(self, code: str) -> Response:
        return RedirectResponse(
            url=append_query_params(self.error_path, {"error": code}),
            status_code=302,
        )
