"""Session vault: durable, user-visible history of sourcing sessions.

All sessions are kept as one ordered list under a single namespaced key.
Every operation reads and writes that whole list.
"""

from __future__ import annotations

import threading
import time

import structlog

from backend.api.schemas import UNTITLED_SESSION, VaultSession
from backend.core.database import read_value, write_value

logger = structlog.get_logger(__name__)

VAULT_KEY = "vendor-nexus-vault"


def _now_ms() -> int:
    return int(time.time() * 1000)


class VaultStore:
    """save / list / get / delete over the namespaced vault key."""

    def __init__(self, key: str = VAULT_KEY):
        self.key = key
        self._lock = threading.Lock()
        self._last_tick = 0

    def _load(self) -> list[VaultSession]:
        raw = read_value(self.key) or []
        return [VaultSession.model_validate(item) for item in raw]

    def _store(self, sessions: list[VaultSession]) -> None:
        write_value(self.key, [s.model_dump(mode="json") for s in sessions])

    def _tick(self) -> int:
        # Millisecond clock, bumped if two saves land in the same millisecond
        self._last_tick = max(_now_ms(), self._last_tick + 1)
        return self._last_tick

    def save(self, session: VaultSession) -> VaultSession:
        """Upsert by id: replace in place if present, else prepend.

        A session without an id gets one here, once. The timestamp and the
        title are refreshed on every save.

        Args:
            session: Working copy of the session from the UI.

        Returns:
            The session as stored.
        """
        with self._lock:
            sessions = self._load()
            item_name = session.requirement.item_name if session.requirement else None
            stamp = self._tick()
            stored = session.model_copy(update={
                "id": session.id or str(stamp),
                "timestamp": stamp,
                "title": item_name or UNTITLED_SESSION,
            })

            for index, existing in enumerate(sessions):
                if existing.id == stored.id:
                    sessions[index] = stored
                    break
            else:
                sessions.insert(0, stored)

            self._store(sessions)

        logger.info("vault.saved", session_id=stored.id, messages=len(stored.messages),
                    vendors=len(stored.vendors))
        return stored

    def list(self) -> list[VaultSession]:
        """All sessions, most recently saved or updated first."""
        with self._lock:
            sessions = self._load()
        return sorted(sessions, key=lambda s: s.timestamp, reverse=True)

    def get(self, session_id: str) -> VaultSession | None:
        with self._lock:
            for session in self._load():
                if session.id == session_id:
                    return session
        return None

    def delete(self, session_id: str) -> list[VaultSession]:
        """Remove a session by id and return what is left."""
        with self._lock:
            sessions = self._load()
            remaining = [s for s in sessions if s.id != session_id]
            self._store(remaining)

        logger.info("vault.deleted", session_id=session_id,
                    found=len(remaining) != len(sessions))
        return sorted(remaining, key=lambda s: s.timestamp, reverse=True)
