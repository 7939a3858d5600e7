"""Key-value session stores for bot-side conversation history.

Every store exposes get / put / delete with a per-entry time-to-live, so the
backing implementation can be swapped without touching the conversation
logic.
"""

import os
import threading
import time
from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class SessionStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any, ttl: int | None = None) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemorySessionStore:
    """Process-local store with per-entry expiry. Thread-safe."""

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS):
        self.default_ttl = default_ttl
        self._lock = threading.Lock()
        # key -> (value, expires_at)
        self._items: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        now = time.monotonic()
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at <= now:
                del self._items[key]
                logger.debug("session_store.expired", key=key)
                return None
            return value

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        now = time.monotonic()
        expires_at = now + (ttl if ttl is not None else self.default_ttl)
        with self._lock:
            self._sweep(now)
            self._items[key] = (value, expires_at)

    def _sweep(self, now: float) -> None:
        """Drop every expired entry. Caller holds the lock."""
        expired = [k for k, (_, expires_at) in self._items.items() if expires_at <= now]
        for key in expired:
            del self._items[key]
        if expired:
            logger.debug("session_store.swept", expired=len(expired), remaining=len(self._items))

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class NullSessionStore:
    """Stores nothing. Every turn is sent to the model on its own."""

    def get(self, key: str) -> Any | None:
        return None

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        pass

    def delete(self, key: str) -> None:
        pass


def create_session_store() -> SessionStore:
    """Build the store selected by SESSION_STORE (memory | none)."""
    kind = os.environ.get("SESSION_STORE", "memory").lower()
    ttl = int(os.environ.get("SESSION_TTL_SECONDS", str(DEFAULT_TTL_SECONDS)))

    if kind == "none":
        logger.info("session_store.created", kind="none")
        return NullSessionStore()
    if kind != "memory":
        logger.warning("session_store.unknown_kind", kind=kind, fallback="memory")
    logger.info("session_store.created", kind="memory", ttl=ttl)
    return InMemorySessionStore(default_ttl=ttl)
