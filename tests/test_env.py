import logging

import pytest

from artistviz import env


def test_validate_env_accepts_minimal_config(spotify_env) -> None:
    env.validate_env()


@pytest.mark.parametrize(
    "missing",
    ["SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET", "SPOTIFY_REDIRECT_URI"],
)
def test_validate_env_missing_required(spotify_env, monkeypatch, missing: str) -> None:
    monkeypatch.delenv(missing)

    with pytest.raises(RuntimeError, match=missing):
        env.validate_env()


def test_validate_env_rejects_bad_redirect_uri(spotify_env, monkeypatch) -> None:
    monkeypatch.setenv("SPOTIFY_REDIRECT_URI", "not a url")

    with pytest.raises(RuntimeError, match="SPOTIFY_REDIRECT_URI must be a valid"):
        env.validate_env()


def test_validate_env_rejects_offsite_error_path(spotify_env, monkeypatch) -> None:
    monkeypatch.setenv("ERROR_REDIRECT_PATH", "https://evil.example/error")

    with pytest.raises(RuntimeError, match="ERROR_REDIRECT_PATH"):
        env.validate_env()


def test_validate_env_rejects_bad_ttl(spotify_env, monkeypatch) -> None:
    monkeypatch.setenv("SESSION_TTL_SECONDS", "soon")

    with pytest.raises(RuntimeError, match="must be an integer"):
        env.validate_env()


def test_validate_env_warns_without_session_secret(spotify_env, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="artistviz"):
        env.validate_env()

    assert "SESSION_SECRET is not set" in caplog.text


def test_is_truthy() -> None:
    assert env.is_truthy("1")
    assert env.is_truthy(" Yes ")
    assert not env.is_truthy("0")
    assert not env.is_truthy(None)


def test_get_env_float(monkeypatch) -> None:
    monkeypatch.setenv("SPOTIFY_TIMEOUT", "2.5")

    assert env.get_env_float("SPOTIFY_TIMEOUT", 10.0) == 2.5

    monkeypatch.setenv("SPOTIFY_TIMEOUT", "fast")
    with pytest.raises(RuntimeError, match="must be a number"):
        env.get_env_float("SPOTIFY_TIMEOUT", 10.0)
