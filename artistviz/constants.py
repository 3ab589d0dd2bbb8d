from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger("artistviz")
APP_VERSION = "0.1.0"

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"
TOP_ARTISTS_LIMIT = 20
PREVIEW_MARKET = "US"
TIME_RANGES = ("short_term", "medium_term", "long_term")
DEFAULT_TIME_RANGE = "medium_term"

ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
