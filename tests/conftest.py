"""Shared fixtures: a scripted model provider and a small git repository."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable

import pytest

from gittyx.schema.models import ChatTurn


class FakeProvider:
    """Scripted stand-in for the model provider.

    ``responses`` are consumed in order by ``generate_content``; an Exception
    in the list is raised instead of returned. When the list runs out,
    ``responder`` (if set) is called with the last prompt text.
    """

    def __init__(self, responses: list | None = None):
        self.responses = list(responses or [])
        self.responder: Callable[[str], str] | None = None
        self.stream_chunks = ["Hello", ", ", "world"]
        self.fail_embeddings = 0
        self.calls: list[list[ChatTurn]] = []
        self.stream_calls: list[list[ChatTurn]] = []
        self.embed_calls: list[list[str]] = []

    def generate_content(self, model: str, contents: list[ChatTurn]) -> str:
        self.calls.append(list(contents))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        if self.responder is not None:
            return self.responder(contents[-1].text)
        return ""

    def generate_content_stream(self, model: str, contents: list[ChatTurn]):
        self.stream_calls.append(list(contents))
        yield from self.stream_chunks

    def get_embedding(self, model: str, text: str) -> list[float]:
        return self.get_embeddings(model, [text])[0]

    def get_embeddings(self, model: str, texts: list[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        if self.fail_embeddings:
            self.fail_embeddings -= 1
            raise RuntimeError("embedding service unavailable")
        return [embed(t) for t in texts]


def embed(text: str) -> list[float]:
    """Deterministic toy embedding: parser-related text points one way, the rest another."""
    lowered = text.lower()
    return [1.0 if "parser" in lowered else 0.0, 1.0 if "readme" in lowered else 0.0, 0.1]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary Git repo with four commits on three days."""
    repo = tmp_path / "repo"
    repo.mkdir()

    def run(*args: str, date: str | None = None) -> None:
        env = dict(os.environ)
        if date:
            env["GIT_AUTHOR_DATE"] = date
            env["GIT_COMMITTER_DATE"] = date
        subprocess.run(args, cwd=repo, capture_output=True, text=True, check=True, env=env)

    run("git", "init")
    run("git", "config", "user.email", "test@example.com")
    run("git", "config", "user.name", "Test User")
    run("git", "config", "commit.gpgsign", "false")

    # Commit 1: initial file
    (repo / "app.py").write_text("print('hello')\n")
    run("git", "add", "app.py")
    run("git", "commit", "-m", "Initial commit", date="2025-01-01T10:00:00+00:00")

    # Commit 2: add parser
    (repo / "src").mkdir()
    (repo / "src" / "parser.py").write_text("def parse(text):\n    return text.split()\n")
    run("git", "add", "src/parser.py")
    run("git", "commit", "-m", "Add parser module", date="2025-01-02T09:00:00+00:00")

    # Commit 3: trivial version bump
    (repo / "VERSION").write_text("0.2.0\n")
    run("git", "add", "VERSION")
    run("git", "commit", "-m", "Bump version to 0.2.0", date="2025-01-02T15:00:00+00:00")

    # Commit 4: modify parser
    (repo / "src" / "parser.py").write_text(
        "def parse(text):\n    return [t for t in text.split() if t]\n"
    )
    run("git", "add", "src/parser.py")
    run("git", "commit", "-m", "Fix parser edge case", date="2025-01-03T12:00:00+00:00")

    return repo
