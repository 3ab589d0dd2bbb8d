from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class PendingLogin:
    state: str


@dataclass(frozen=True)
class Authenticated:
    access_token: str
    refresh_token: str | None = None
    expires_at: float | None = None


AuthState = Union[Anonymous, PendingLogin, Authenticated]

ANONYMOUS = Anonymous()


@dataclass
class SessionRecord:
    """What the server keeps for one session id; anonymous sessions have no record."""

    auth: PendingLogin | Authenticated
    created_at: float

    def is_expired(self, ttl_seconds: int, *, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return current - self.created_at >= ttl_seconds
