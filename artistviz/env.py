from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from auth.urls import is_local_path

from .constants import ENV_FILE, LOGGER

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")


def load_env() -> None:
    if not ENV_FILE.exists():
        return
    load_dotenv(ENV_FILE, override=True)


def _validate_url(key: str) -> None:
    value = os.getenv(key, "").strip()
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError:
        raise RuntimeError(f"{key} must be a valid http(s) URL, got {value!r}.")


def validate_env() -> None:
    required = (
        "SPOTIFY_CLIENT_ID",
        "SPOTIFY_CLIENT_SECRET",
        "SPOTIFY_REDIRECT_URI",
    )
    missing = [key for key in required if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    _validate_url("SPOTIFY_REDIRECT_URI")
    if os.getenv("SPOTIFY_API_BASE_URL", "").strip():
        _validate_url("SPOTIFY_API_BASE_URL")

    error_path = os.getenv("ERROR_REDIRECT_PATH", "").strip()
    if error_path and not is_local_path(error_path):
        raise RuntimeError("ERROR_REDIRECT_PATH must be a path on this site, e.g. /error.html.")

    if get_env_int("SESSION_TTL_SECONDS", 86400) <= 0:
        raise RuntimeError("SESSION_TTL_SECONDS must be positive.")

    if not os.getenv("SESSION_SECRET", "").strip():
        LOGGER.warning(
            "SESSION_SECRET is not set; session cookies are signed with a key derived "
            "from SPOTIFY_CLIENT_SECRET."
        )


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("APP_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
