import pytest

OPTIONAL_ENV = (
    "SESSION_SECRET",
    "SESSION_COOKIE_NAME",
    "SESSION_COOKIE_SECURE",
    "SESSION_TTL_SECONDS",
    "SPOTIFY_API_BASE_URL",
    "SPOTIFY_TIMEOUT",
    "ERROR_REDIRECT_PATH",
    "STATIC_DIR",
    "APP_HOST",
    "APP_PORT",
)


@pytest.fixture
def spotify_env(monkeypatch) -> None:
    for key in OPTIONAL_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "spotify-client")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "spotify-secret")
    monkeypatch.setenv("SPOTIFY_REDIRECT_URI", "https://artistviz.example.com/callback")
