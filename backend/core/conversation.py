"""Conversation state and history policy.

A conversation is an ordered sequence of role-tagged messages, appended in
arrival order and capped to a hard sliding window after each assistant turn.
`/start` and `/clear` reset it without reaching the model.
"""

import threading
import weakref
from dataclasses import dataclass, field, replace
from enum import Enum

import structlog

from backend.agent.sourcing import SourcingAgent
from backend.api.schemas import MessageRecord
from backend.core.session_store import SessionStore

logger = structlog.get_logger(__name__)

MAX_HISTORY = 12


class SessionState(str, Enum):
    EMPTY = "empty"
    ACTIVE = "active"


class Command(str, Enum):
    START = "/start"
    CLEAR = "/clear"


@dataclass(frozen=True)
class ConversationSession:
    """Rolling history for one chat identity."""
    key: str
    messages: tuple[MessageRecord, ...] = ()

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self.messages else SessionState.EMPTY


def append(session: ConversationSession, message: MessageRecord) -> ConversationSession:
    """Return a copy of the session with the message added at the end."""
    return replace(session, messages=session.messages + (message,))


def truncate(session: ConversationSession, limit: int = MAX_HISTORY) -> ConversationSession:
    """Keep only the most recent `limit` messages."""
    if len(session.messages) <= limit:
        return session
    return replace(session, messages=session.messages[-limit:])


def reset(session: ConversationSession) -> ConversationSession:
    return replace(session, messages=())


def bounded(history: list[MessageRecord], limit: int = MAX_HISTORY) -> list[MessageRecord]:
    """Window a caller-held history before it is sent to the model."""
    return history[-limit:] if len(history) > limit else list(history)


def parse_command(text: str) -> Command | None:
    """Recognize /start and /clear as a case-sensitive message prefix."""
    for command in Command:
        if text.startswith(command.value):
            return command
    return None


@dataclass
class TurnOutcome:
    """What the transport should tell the user after one inbound message.

    Attributes:
        command: The reset command that was handled, if any.
        text: Assistant prose (empty for commands).
        vendors: Raw vendor objects from the reply.
        fallback: True if the model call failed.
        history_size: Messages stored for the key after the turn.
    """
    command: Command | None = None
    text: str = ""
    vendors: list[dict] = field(default_factory=list)
    fallback: bool = False
    history_size: int = 0


class ConversationManager:
    """Runs bot turns against an injected session store.

    Read-modify-write on a key is serialized with a per-key lock; different
    keys proceed independently.
    """

    def __init__(self, agent: SourcingAgent, store: SessionStore, ttl: int | None = None):
        self.agent = agent
        self.store = store
        self.ttl = ttl
        # Entries vanish once no turn for the key holds its lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def load(self, key: str) -> ConversationSession:
        session = self.store.get(key)
        if isinstance(session, ConversationSession):
            return session
        return ConversationSession(key=key)

    def handle_text(self, key: str, text: str) -> TurnOutcome:
        """Process one inbound user message for a chat identity.

        Args:
            key: Chat identity (e.g. Telegram chat id as a string).
            text: Raw message text.

        Returns:
            TurnOutcome describing the reply to send.
        """
        command = parse_command(text)
        if command is not None:
            with self._lock_for(key):
                self.store.delete(key)
            logger.info("conversation.reset", key=key, command=command.value)
            return TurnOutcome(command=command)

        with self._lock_for(key):
            session = append(self.load(key), MessageRecord(role="user", content=text))
            result = self.agent.ask(list(session.messages))

            if result.fallback:
                # Failed turn: stored history stays as it was before the turn.
                previous = len(self.load(key).messages)
                return TurnOutcome(text=result.text, fallback=True, history_size=previous)

            session = truncate(append(session, MessageRecord(role="assistant", content=result.text)))
            self.store.put(key, session, self.ttl)

        logger.info("conversation.turn", key=key, history=len(session.messages),
                    vendors=len(result.vendors))
        return TurnOutcome(text=result.text, vendors=result.vendors,
                           history_size=len(session.messages))
