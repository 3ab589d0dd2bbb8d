from __future__ import annotations


class AuthError(RuntimeError):
    code = "auth_error"
    status_code = 401
    default_message = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class StateMismatchError(AuthError):
    code = "state_mismatch"
    status_code = 400
    default_message = "OAuth state does not match the pending login."


class TokenExchangeError(AuthError):
    code = "token_exchange_failed"
    status_code = 502
    default_message = "Failed to exchange the Spotify authorization code."


class NotAuthenticatedError(AuthError):
    code = "not_authenticated"
    default_message = "Not logged in."


class NoRefreshTokenError(AuthError):
    code = "no_refresh_token"
    default_message = "No refresh token stored for this session."


class RefreshFailedError(AuthError):
    code = "refresh_failed"
    default_message = "Spotify refused to refresh the access token."
