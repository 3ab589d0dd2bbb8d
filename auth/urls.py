from __future__ import annotations

import urllib.parse


def is_local_path(target: str) -> bool:
    parsed = urllib.parse.urlparse(target)
    return not parsed.scheme and not parsed.netloc and target.startswith("/")


def append_query_params(url: str, params: dict[str, str]) -> str:
    parsed = urllib.parse.urlparse(url)
    existing = urllib.parse.parse_qs(parsed.query, keep_blank_values=True)
    for key, value in params.items():
        existing[key] = [value]

    new_query = urllib.parse.urlencode(existing, doseq=True)
    return urllib.parse.urlunparse(parsed._replace(query=new_query))
