"""Unit tests for conversation state and the history policy."""

import pytest

from backend.agent.sourcing import FALLBACK_MESSAGE, VENDORS_ONLY_MESSAGE
from backend.api.schemas import MessageRecord
from backend.core.conversation import (
    MAX_HISTORY,
    Command,
    ConversationManager,
    ConversationSession,
    SessionState,
    append,
    bounded,
    parse_command,
    reset,
    truncate,
)
from backend.core.llm_gateway import LLMUnavailableError
from backend.core.session_store import InMemorySessionStore, NullSessionStore


def _msg(role: str, content: str) -> MessageRecord:
    return MessageRecord(role=role, content=content)


class TestSessionPolicy:

    def test_append_preserves_order_and_original(self):
        empty = ConversationSession(key="c1")
        one = append(empty, _msg("user", "a"))
        two = append(one, _msg("assistant", "b"))
        assert [m.content for m in two.messages] == ["a", "b"]
        assert empty.messages == ()
        assert len(one.messages) == 1

    def test_truncate_keeps_most_recent(self):
        session = ConversationSession(key="c1")
        for i in range(20):
            session = append(session, _msg("user" if i % 2 == 0 else "assistant", f"m{i}"))
        truncated = truncate(session)
        assert len(truncated.messages) == MAX_HISTORY
        assert truncated.messages[0].content == "m8"
        assert truncated.messages[-1].content == "m19"

    def test_truncate_noop_under_limit(self):
        session = append(ConversationSession(key="c1"), _msg("user", "a"))
        assert truncate(session) is session

    def test_states(self):
        session = ConversationSession(key="c1")
        assert session.state == SessionState.EMPTY
        session = append(session, _msg("user", "hi"))
        assert session.state == SessionState.ACTIVE
        assert reset(session).state == SessionState.EMPTY

    def test_messages_are_immutable(self):
        message = _msg("user", "a")
        with pytest.raises(Exception):
            message.content = "b"

    def test_bounded_window(self):
        history = [_msg("user", str(i)) for i in range(15)]
        assert [m.content for m in bounded(history)] == [str(i) for i in range(3, 15)]
        assert len(bounded(history[:5])) == 5


class TestParseCommand:

    @pytest.mark.parametrize("text,expected", [
        ("/start", Command.START),
        ("/start@VendorBot", Command.START),
        ("/clear", Command.CLEAR),
        ("/clear please", Command.CLEAR),
        ("/Start", None),
        ("/CLEAR", None),
        (" /start", None),
        ("please /clear", None),
        ("I need valves", None),
    ])
    def test_prefix_case_sensitive(self, text, expected):
        assert parse_command(text) == expected


class TestConversationManager:

    def test_twenty_turns_leave_twelve(self, agent):
        store = InMemorySessionStore()
        manager = ConversationManager(agent, store)
        for i in range(10):
            manager.handle_text("42", f"question {i}")
        session = store.get("42")
        assert len(session.messages) == 12
        assert session.messages[0].content == "question 4"
        assert session.messages[-1].role == "assistant"

    def test_clear_then_one_turn(self, agent):
        store = InMemorySessionStore()
        manager = ConversationManager(agent, store)
        for i in range(10):
            manager.handle_text("42", f"question {i}")

        outcome = manager.handle_text("42", "/clear")
        assert outcome.command == Command.CLEAR
        assert store.get("42") is None

        manager.handle_text("42", "fresh start")
        # one turn = the user message plus the assistant reply
        assert [m.role for m in store.get("42").messages] == ["user", "assistant"]
        assert store.get("42").messages[0].content == "fresh start"

    @pytest.mark.parametrize("command", ["/start", "/clear"])
    def test_commands_skip_model(self, agent, mock_gateway, command):
        manager = ConversationManager(agent, InMemorySessionStore())
        outcome = manager.handle_text("42", command)
        assert outcome.command is not None
        mock_gateway.complete.assert_not_called()

    def test_history_sent_to_model(self, agent, mock_gateway):
        manager = ConversationManager(agent, InMemorySessionStore())
        manager.handle_text("42", "first")
        manager.handle_text("42", "second")
        sent = mock_gateway.complete.call_args.args[0]
        assert [m.content for m in sent][0] == "first"
        assert sent[-1].content == "second"
        assert len(sent) == 3

    def test_chats_isolated(self, agent):
        store = InMemorySessionStore()
        manager = ConversationManager(agent, store)
        manager.handle_text("1", "hello")
        manager.handle_text("2", "hola")
        assert store.get("1").messages[0].content == "hello"
        assert store.get("2").messages[0].content == "hola"

    def test_vendors_returned(self, agent, mock_gateway, result_reply):
        mock_gateway.complete.return_value = result_reply
        outcome = ConversationManager(agent, InMemorySessionStore()).handle_text("42", "results please")
        assert len(outcome.vendors) == 3
        assert "```" not in outcome.text

    def test_failed_turn_leaves_history_untouched(self, agent, mock_gateway):
        store = InMemorySessionStore()
        manager = ConversationManager(agent, store)
        manager.handle_text("42", "first")

        mock_gateway.complete.side_effect = LLMUnavailableError("down")
        outcome = manager.handle_text("42", "second")

        assert outcome.fallback
        assert outcome.text == FALLBACK_MESSAGE
        assert outcome.vendors == []
        assert [m.content for m in store.get("42").messages][0] == "first"
        assert len(store.get("42").messages) == 2

    def test_null_store_sends_single_turn(self, agent, mock_gateway):
        manager = ConversationManager(agent, NullSessionStore())
        manager.handle_text("42", "first")
        manager.handle_text("42", "second")
        sent = mock_gateway.complete.call_args.args[0]
        assert [m.content for m in sent] == ["second"]

    def test_locks_released_after_turns(self, agent):
        manager = ConversationManager(agent, InMemorySessionStore())
        for key in ("1", "2", "3"):
            manager.handle_text(key, "hi")
        manager.handle_text("1", "/clear")
        assert len(manager._locks) == 0

    def test_lock_shared_while_held(self, agent):
        manager = ConversationManager(agent, InMemorySessionStore())
        held = manager._lock_for("42")
        assert manager._lock_for("42") is held
        assert manager._lock_for("7") is not held

    def test_vendor_only_reply_stored_with_summary(self, agent, mock_gateway):
        store = InMemorySessionStore()
        manager = ConversationManager(agent, store)
        mock_gateway.complete.return_value = '```json\n[{"name": "Acme"}]\n```'

        outcome = manager.handle_text("42", "results")

        assert outcome.text == VENDORS_ONLY_MESSAGE
        assert store.get("42").messages[-1].content == VENDORS_ONLY_MESSAGE
