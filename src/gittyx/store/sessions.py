"""Chat session history, one JSON file per session id."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from gittyx.schema.models import ChatRole, ChatTurn
from gittyx.store.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass
class SessionInfo:
    """Listing entry for a stored session."""

    id: str
    title: str
    message_count: int
    updated_at: datetime


class SessionStore:
    """Loads, appends to, and deletes chat sessions under a directory."""

    TITLE_LENGTH = 50

    def __init__(self, directory: Path):
        self.directory = directory

    def _path(self, session_id: str) -> Path:
        if not _SAFE_ID.match(session_id) or session_id in {".", ".."}:
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def load(self, session_id: str) -> list[ChatTurn]:
        """Return the session's turns; missing or corrupt sessions are empty."""
        raw = read_json(self._path(session_id))
        if not isinstance(raw, list):
            return []
        try:
            return [ChatTurn.model_validate(t) for t in raw]
        except ValidationError as e:
            logger.warning("Discarding corrupt session %s: %s", session_id, e)
            return []

    def save(self, session_id: str, turns: list[ChatTurn]) -> None:
        write_json_atomic(
            self._path(session_id),
            [t.model_dump(mode="json") for t in turns],
        )

    def append(self, session_id: str, *turns: ChatTurn) -> list[ChatTurn]:
        """Append turns to a session and persist it. Returns the full history."""
        history = self.load(session_id)
        history.extend(turns)
        self.save(session_id, history)
        return history

    def context_window(self, session_id: str, max_turns: int) -> list[ChatTurn]:
        """The most recent ``max_turns`` turns, or the whole history when ``max_turns`` is 0.

        The window never starts on a model turn, so replayed context always
        opens with the user.
        """
        history = self.load(session_id)
        if max_turns > 0 and len(history) > max_turns:
            history = history[-max_turns:]
        while history and history[0].role == ChatRole.MODEL:
            history = history[1:]
        return history

    def delete(self, session_id: str) -> bool:
        path = self._path(session_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_ids(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def list_sessions(self) -> list[SessionInfo]:
        """All sessions, most recently updated first."""
        sessions = []
        for session_id in self.list_ids():
            history = self.load(session_id)
            first_user = next((t for t in history if t.role == ChatRole.USER), None)
            if first_user is None:
                title = "New Conversation"
            elif len(first_user.text) > self.TITLE_LENGTH:
                title = first_user.text[: self.TITLE_LENGTH] + "..."
            else:
                title = first_user.text
            mtime = self._path(session_id).stat().st_mtime
            sessions.append(SessionInfo(
                id=session_id,
                title=title,
                message_count=len(history),
                updated_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
            ))
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def reset(self) -> int:
        """Delete every session file. Returns how many were removed."""
        removed = 0
        for session_id in self.list_ids():
            if self.delete(session_id):
                removed += 1
        return removed
