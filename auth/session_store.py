from __future__ import annotations

from abc import ABC, abstractmethod

from auth.models import SessionRecord


class SessionStore(ABC):
    @abstractmethod
    async def get(self, session_id: str) -> SessionRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, session_id: str, record: SessionRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def purge_created_before(self, cutoff: float) -> list[str]:
        """Drop every record created before ``cutoff`` and return the dropped ids."""
        raise NotImplementedError


class MemorySessionStore(SessionStore):
    """Process-local sessions; everything is lost on restart."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}

    async def get(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    async def set(self, session_id: str, record: SessionRecord) -> None:
        self._sessions[session_id] = record

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def purge_created_before(self, cutoff: float) -> list[str]:
        expired = [sid for sid, record in self._sessions.items() if record.created_at < cutoff]
        for session_id in expired:
            del self._sessions[session_id]
        return expired

    def __len__(self) -> int:
        return len(self._sessions)
