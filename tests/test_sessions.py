"""Tests for chat session storage."""

from __future__ import annotations

from pathlib import Path

import pytest

from gittyx.schema.models import ChatRole, ChatTurn
from gittyx.store.sessions import SessionStore


def _user(text: str) -> ChatTurn:
    return ChatTurn(role=ChatRole.USER, text=text)


def _model(text: str) -> ChatTurn:
    return ChatTurn(role=ChatRole.MODEL, text=text)


@pytest.fixture
def sessions(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "gittyx_sessions")


class TestLoadSave:
    def test_missing_session_is_empty(self, sessions: SessionStore):
        assert sessions.load("nope") == []

    def test_append_persists(self, sessions: SessionStore):
        sessions.append("s1", _user("hi"), _model("hello"))
        sessions.append("s1", _user("again"))
        turns = sessions.load("s1")
        assert [t.text for t in turns] == ["hi", "hello", "again"]
        assert turns[1].role == ChatRole.MODEL

    def test_corrupt_session_is_empty(self, sessions: SessionStore):
        sessions.directory.mkdir(parents=True)
        (sessions.directory / "bad.json").write_text('[{"role": "robot"}]')
        assert sessions.load("bad") == []

    @pytest.mark.parametrize("bad_id", ["../escape", "a/b", "..", ""])
    def test_invalid_ids_rejected(self, sessions: SessionStore, bad_id: str):
        with pytest.raises(ValueError):
            sessions.load(bad_id)


class TestContextWindow:
    def test_caps_to_max_turns(self, sessions: SessionStore):
        for i in range(15):
            sessions.append("s", _user(f"q{i}"), _model(f"a{i}"))
        window = sessions.context_window("s", 20)
        assert len(window) == 20
        assert window[0].text == "q5"
        assert window[-1].text == "a14"

    def test_never_starts_with_model_turn(self, sessions: SessionStore):
        sessions.append("s", _user("q0"), _model("a0"), _user("q1"), _model("a1"))
        window = sessions.context_window("s", 3)
        assert [t.text for t in window] == ["q1", "a1"]

    def test_zero_means_everything(self, sessions: SessionStore):
        for i in range(30):
            sessions.append("s", _user(f"q{i}"), _model(f"a{i}"))
        assert len(sessions.context_window("s", 0)) == 60


class TestListing:
    def test_titles(self, sessions: SessionStore):
        long_question = "x" * 80
        sessions.append("long", _user(long_question), _model("a"))
        sessions.append("short", _user("What changed?"))
        sessions.save("empty", [])

        by_id = {s.id: s for s in sessions.list_sessions()}
        assert by_id["long"].title == "x" * 50 + "..."
        assert by_id["long"].message_count == 2
        assert by_id["short"].title == "What changed?"
        assert by_id["empty"].title == "New Conversation"

    def test_no_directory(self, sessions: SessionStore):
        assert sessions.list_sessions() == []

    def test_delete(self, sessions: SessionStore):
        sessions.append("s1", _user("hi"))
        assert sessions.delete("s1") is True
        assert sessions.delete("s1") is False
        assert sessions.list_ids() == []

    def test_reset(self, sessions: SessionStore):
        sessions.append("s1", _user("hi"))
        sessions.append("s2", _user("hi"))
        assert sessions.reset() == 2
        assert sessions.list_ids() == []
